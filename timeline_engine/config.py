"""
Engine Configuration

One frozen config per component, composed into EngineConfig.
Environment overrides are read only through EngineConfig.from_env.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Mapping, Optional
import math
import os


BUCKET_MODES = ("relative", "calendar", "period")


def require_positive(name: str, value: float) -> None:
    """Reject zero, negative, infinite and NaN values."""
    if not (math.isfinite(value) and value > 0):
        raise ValueError(f"{name} must be a finite positive number, got {value!r}")


def require_non_negative(name: str, value: float) -> None:
    if not (math.isfinite(value) and value >= 0):
        raise ValueError(f"{name} must be a finite non-negative number, got {value!r}")


@dataclass(frozen=True)
class ScaleConfig:
    """Output range of the time scale, in rendering units."""
    viewport_width: float = 1200.0
    zoom: float = 1.0
    padding_ratio: float = 0.02
    padding_left: float = 0.0
    padding_right: float = 0.0
    min_bar_width: float = 40.0

    def __post_init__(self):
        require_positive("viewport_width", self.viewport_width)
        require_positive("zoom", self.zoom)
        require_non_negative("padding_ratio", self.padding_ratio)
        require_non_negative("padding_left", self.padding_left)
        require_non_negative("padding_right", self.padding_right)
        require_non_negative("min_bar_width", self.min_bar_width)


@dataclass(frozen=True)
class BucketConfig:
    mode: str = "relative"
    calendar_include_drafts: bool = False

    def __post_init__(self):
        if self.mode not in BUCKET_MODES:
            raise ValueError(f"Unknown bucket mode: {self.mode!r} (expected one of {BUCKET_MODES})")


@dataclass(frozen=True)
class LaneConfig:
    # Draft spans outside the scale bounds are clamped, never dropped
    clamp_to_bounds: bool = True


@dataclass
class EngineConfig:
    """Unified configuration for the layout engine."""
    scale: ScaleConfig = None
    buckets: BucketConfig = None
    lanes: LaneConfig = None

    def __post_init__(self):
        self.scale = self.scale or ScaleConfig()
        self.buckets = self.buckets or BucketConfig()
        self.lanes = self.lanes or LaneConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'EngineConfig':
        """
        Build a config from TIMELINE_* environment variables.

        Unset variables keep their defaults. Malformed values raise
        ValueError naming the offending variable.
        """
        env = os.environ if environ is None else environ
        scale = ScaleConfig()
        buckets = BucketConfig()

        scale_overrides = {}
        for var, attr in (
            ("TIMELINE_VIEWPORT_WIDTH", "viewport_width"),
            ("TIMELINE_ZOOM", "zoom"),
            ("TIMELINE_PADDING_RATIO", "padding_ratio"),
        ):
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            try:
                scale_overrides[attr] = float(raw)
            except ValueError as e:
                raise ValueError(f"{var} must be a number, got {raw!r}") from e
        if scale_overrides:
            try:
                scale = replace(scale, **scale_overrides)
            except ValueError as e:
                raise ValueError(f"Invalid TIMELINE_* scale setting: {e}") from e

        mode = env.get("TIMELINE_BUCKET_MODE")
        if mode:
            try:
                buckets = BucketConfig(mode=mode.strip().lower())
            except ValueError as e:
                raise ValueError(f"TIMELINE_BUCKET_MODE: {e}") from e

        return cls(scale=scale, buckets=buckets)
