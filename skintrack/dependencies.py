"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from skintrack.cycle.mutator import CycleService


def get_cycle_service(request: Request) -> CycleService:
    """Return the CycleService built at startup.

    The lifespan hook stores it on ``app.state``; tests override this
    dependency with a service over an in-memory store.
    """
    service: CycleService | None = getattr(request.app.state, "cycle_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Cycle service not initialized")
    return service


# Annotated shortcuts for route signatures
CycleServiceDep = Annotated[CycleService, Depends(get_cycle_service)]
