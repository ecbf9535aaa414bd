"""Engine configuration - the tunable constants of the analytics engine.

Platform attribution shares, efficiency-ratio status thresholds and the
pacing on-track threshold live here so they can be reviewed and overridden
in a YAML file instead of being buried in the calculators.
"""

from dataclasses import dataclass, field
from typing import Any

from .models import DEFAULT_ATTRIBUTION, Platform, StatusBand


# MER (spend / revenue): lower is better. Each entry is (upper bound, band);
# the last band catches everything else and reports its bound as threshold.
DEFAULT_MER_THRESHOLDS = [
    (0.15, StatusBand.EXCELLENT),
    (0.20, StatusBand.GOOD),
    (0.25, StatusBand.WARNING),
    (0.30, StatusBand.DANGER),
]

# ROAS (revenue / spend): higher is better. Each entry is (lower bound, band).
DEFAULT_ROAS_THRESHOLDS = [
    (5.0, StatusBand.EXCELLENT),
    (4.0, StatusBand.GOOD),
    (3.0, StatusBand.WARNING),
    (0.0, StatusBand.DANGER),
]


def _parse_thresholds(raw, key: str) -> list[tuple[float, StatusBand]]:
    """Parse ``[{"bound": 0.15, "status": "excellent"}, ...]``."""
    if not isinstance(raw, list) or not raw:
        raise ValueError(f"{key}: expected a non-empty list of bounds")
    result = []
    for item in raw:
        try:
            result.append((float(item["bound"]), StatusBand(item["status"])))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"{key}: invalid entry {item!r}") from exc
    return result


def _dump_thresholds(thresholds) -> list[dict]:
    return [{"bound": b, "status": s.value} for b, s in thresholds]


@dataclass
class EngineConfig:
    """Tunable constants for the analytics engine."""
    attribution: dict[Platform, float] = field(
        default_factory=lambda: dict(DEFAULT_ATTRIBUTION))
    mer_thresholds: list[tuple[float, StatusBand]] = field(
        default_factory=lambda: list(DEFAULT_MER_THRESHOLDS))
    roas_thresholds: list[tuple[float, StatusBand]] = field(
        default_factory=lambda: list(DEFAULT_ROAS_THRESHOLDS))
    on_track_threshold: float = 95.0   # projected % of target
    fill_missing_days: bool = True
    default_mer_target: float = 0.2

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError when a value is out of range."""
        for platform, share in self.attribution.items():
            if share < 0:
                raise ValueError(f"attribution.{platform.value}: must be >= 0")
        if sum(self.attribution.values()) > 1.0 + 1e-9:
            raise ValueError("attribution: shares must sum to at most 1.0")
        mer_bounds = [b for b, _ in self.mer_thresholds]
        if mer_bounds != sorted(mer_bounds):
            raise ValueError("mer_thresholds: bounds must be ascending")
        roas_bounds = [b for b, _ in self.roas_thresholds]
        if roas_bounds != sorted(roas_bounds, reverse=True):
            raise ValueError("roas_thresholds: bounds must be descending")
        if not 0 <= self.default_mer_target <= 1:
            raise ValueError("default_mer_target: must be a fraction in [0, 1]")

    def to_dict(self) -> dict:
        return {
            "attribution": {p.value: s for p, s in self.attribution.items()},
            "mer_thresholds": _dump_thresholds(self.mer_thresholds),
            "roas_thresholds": _dump_thresholds(self.roas_thresholds),
            "on_track_threshold": self.on_track_threshold,
            "fill_missing_days": self.fill_missing_days,
            "default_mer_target": self.default_mer_target,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "EngineConfig":
        d = d or {}
        kwargs: dict[str, Any] = {}
        if "attribution" in d:
            try:
                kwargs["attribution"] = {
                    Platform(k): float(v) for k, v in d["attribution"].items()
                }
            except (AttributeError, TypeError, ValueError) as exc:
                raise ValueError(f"attribution: {exc}") from exc
        if "mer_thresholds" in d:
            kwargs["mer_thresholds"] = _parse_thresholds(
                d["mer_thresholds"], "mer_thresholds")
        if "roas_thresholds" in d:
            kwargs["roas_thresholds"] = _parse_thresholds(
                d["roas_thresholds"], "roas_thresholds")
        if "on_track_threshold" in d:
            kwargs["on_track_threshold"] = float(d["on_track_threshold"])
        if "fill_missing_days" in d:
            kwargs["fill_missing_days"] = bool(d["fill_missing_days"])
        if "default_mer_target" in d:
            kwargs["default_mer_target"] = float(d["default_mer_target"])
        return cls(**kwargs)
