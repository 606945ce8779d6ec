"""Load, validate, and hot-reload the cycle forecasting policy.

The policy lives in ``cycle_policy.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_policy()`` to re-read from
disk after an edit, no restart required.

Usage::

    from skintrack.cycle.config_loader import get_cycle_policy

    policy = get_cycle_policy()
    policy.forecast.luteal_phase_days        # 17
    policy.cycle_length.clamp(90)            # 60
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("skintrack.cycle.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_policy.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LengthBounds:
    """Range and inference settings for one cycle measurement.

    ``min_days``/``max_days`` bound user-configured values.  Values inferred
    from history are clamped to ``[inferred_min_days, max_days]`` instead,
    so a one-off short run cannot drag the estimate below plausibility.
    """

    default_days: int
    min_days: int
    max_days: int
    inferred_min_days: int
    rolling_window: int = 6

    def clamp(self, value: int) -> int:
        return max(self.min_days, min(self.max_days, value))

    def clamp_inferred(self, value: int) -> int:
        return max(self.inferred_min_days, min(self.max_days, value))

    def contains(self, value: int) -> bool:
        return self.min_days <= value <= self.max_days


@dataclass(frozen=True)
class ForecastConfig:
    """Projection settings.

    ``luteal_phase_days`` is an assumption, not a measurement: ovulation is
    placed this many days before each predicted period start.
    """

    min_cycles: int = 8
    horizon_extra_cycles: int = 2
    luteal_phase_days: int = 17


@dataclass(frozen=True)
class FertileWindowConfig:
    """Fertile window offsets relative to the ovulation day (inclusive)."""

    days_before_ovulation: int = 5
    days_after_ovulation: int = 1


@dataclass(frozen=True)
class CyclePolicy:
    """Complete, validated cycle policy.

    This is the single in-memory representation of cycle_policy.yaml.  The
    inferrer, projector and mutator all read from this object.

    Attributes:
        version:        Config schema version string.
        cycle_length:   Bounds and defaults for cycle length.
        period_length:  Bounds and defaults for period length.
        forecast:       Projection settings.
        fertile_window: Fertile window offsets.
    """

    version: str
    cycle_length: LengthBounds
    period_length: LengthBounds
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    fertile_window: FertileWindowConfig = field(default_factory=FertileWindowConfig)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class CyclePolicyError(ValueError):
    """Raised when cycle_policy.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        CyclePolicyError:  If the YAML is malformed.
    """
    import yaml  # pyyaml

    if not path.exists():
        raise FileNotFoundError(f"Cycle policy not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise CyclePolicyError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CyclePolicy:
    """Validate the raw YAML dict and construct a CyclePolicy.

    Collects every problem before raising so a bad file is fixed in one pass.

    Raises:
        CyclePolicyError: If values are missing, non-numeric, or inconsistent.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, where: str) -> int:
        value: Any = section.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default

    def _bounds(name: str, defaults: dict[str, int]) -> LengthBounds:
        section = raw.get(name) or {}
        if not isinstance(section, dict):
            errors.append(f"'{name}' must be a mapping")
            section = {}
        bounds = LengthBounds(
            default_days=_int(section, "default_days", defaults["default_days"], name),
            min_days=_int(section, "min_days", defaults["min_days"], name),
            max_days=_int(section, "max_days", defaults["max_days"], name),
            inferred_min_days=_int(
                section, "inferred_min_days", defaults["inferred_min_days"], name
            ),
            rolling_window=_int(section, "rolling_window", 6, name),
        )
        if not (1 <= bounds.min_days <= bounds.max_days):
            errors.append(
                f"{name}: min_days={bounds.min_days} / max_days={bounds.max_days} "
                "must satisfy 1 <= min_days <= max_days"
            )
        if not (bounds.min_days <= bounds.inferred_min_days <= bounds.max_days):
            errors.append(f"{name}.inferred_min_days must lie within [min_days, max_days]")
        if not (bounds.inferred_min_days <= bounds.default_days <= bounds.max_days):
            errors.append(
                f"{name}.default_days={bounds.default_days} is outside "
                f"[{bounds.inferred_min_days}, {bounds.max_days}]"
            )
        if bounds.rolling_window < 1:
            errors.append(f"{name}.rolling_window must be at least 1")
        return bounds

    version = str(raw.get("version", "1.0"))

    # ── Lengths ──
    cycle_length = _bounds(
        "cycle_length",
        {"default_days": 28, "min_days": 21, "max_days": 60, "inferred_min_days": 21},
    )
    period_length = _bounds(
        "period_length",
        {"default_days": 5, "min_days": 2, "max_days": 12, "inferred_min_days": 3},
    )
    if period_length.max_days > cycle_length.max_days:
        errors.append("period_length.max_days cannot exceed cycle_length.max_days")

    # ── Forecast ──
    fc_raw = raw.get("forecast") or {}
    forecast = ForecastConfig(
        min_cycles=_int(fc_raw, "min_cycles", 8, "forecast"),
        horizon_extra_cycles=_int(fc_raw, "horizon_extra_cycles", 2, "forecast"),
        luteal_phase_days=_int(fc_raw, "luteal_phase_days", 17, "forecast"),
    )
    if forecast.min_cycles < 1:
        errors.append("forecast.min_cycles must be at least 1")
    if forecast.horizon_extra_cycles < 0:
        errors.append("forecast.horizon_extra_cycles cannot be negative")
    if forecast.luteal_phase_days < 1:
        errors.append("forecast.luteal_phase_days must be at least 1")

    # ── Fertile window ──
    fw_raw = raw.get("fertile_window") or {}
    fertile_window = FertileWindowConfig(
        days_before_ovulation=_int(fw_raw, "days_before_ovulation", 5, "fertile_window"),
        days_after_ovulation=_int(fw_raw, "days_after_ovulation", 1, "fertile_window"),
    )
    if fertile_window.days_before_ovulation < 0 or fertile_window.days_after_ovulation < 0:
        errors.append("fertile_window offsets cannot be negative")

    if errors:
        raise CyclePolicyError(
            f"cycle_policy.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CyclePolicy(
        version=version,
        cycle_length=cycle_length,
        period_length=period_length,
        forecast=forecast,
        fertile_window=fertile_window,
    )


def load_cycle_policy(path: Path | None = None) -> CyclePolicy:
    """Load and validate the cycle policy from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_policy.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    policy = _validate_and_build(raw)
    logger.info("Loaded cycle policy v%s from %s", policy.version, target)
    return policy


def policy_from_dict(raw: dict) -> CyclePolicy:
    """Build a policy from an in-memory mapping (same rules as the YAML file)."""
    return _validate_and_build(raw)


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_policy: CyclePolicy | None = None
_policy_lock = threading.Lock()


def get_cycle_policy() -> CyclePolicy:
    """Return the global CyclePolicy singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_policy()`` to refresh after YAML changes.
    """
    global _policy
    if _policy is None:
        with _policy_lock:
            if _policy is None:  # double-checked locking
                _policy = load_cycle_policy()
    return _policy


def reload_cycle_policy(path: Path | None = None) -> CyclePolicy:
    """Reload the policy from disk and replace the global singleton.

    If validation fails, the old policy is retained and the error re-raised.

    Raises:
        CyclePolicyError:  If the new policy is invalid.
        FileNotFoundError: If the policy file is missing.
    """
    global _policy
    new_policy = load_cycle_policy(path)  # validate before acquiring lock
    with _policy_lock:
        old_version = _policy.version if _policy else "none"
        _policy = new_policy
    logger.info("Reloaded cycle policy: %s → %s", old_version, new_policy.version)
    return new_policy
