"""
Shared dataclasses used across the timestamp correction pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

from epg_timefix.utils.timezone import TimezoneMode


@dataclass(slots=True)
class ProgrammeRecord:
    """One <programme> on its way through the pipeline.

    Only ``start`` and ``stop`` are rewritten; ``payload`` carries the source
    element (or anything else the producer needs) through untouched.
    """
    channel: str
    start: str
    stop: str | None = None
    payload: Any = None


@dataclass(frozen=True, slots=True)
class ManualAdjustment:
    """Operator-supplied (channel display name, minutes) pair."""
    channel_name: str
    minutes: int


@dataclass(frozen=True, slots=True)
class AdjustmentRule:
    """Additive minute correction bound to one channel id."""
    channel_id: str
    delta_minutes: int
    kind: str


@dataclass(frozen=True, slots=True)
class TransformConfig:
    """Configuration resolved once before streaming starts."""
    timezone_mode: TimezoneMode
    zone: tzinfo
    rules: tuple[AdjustmentRule, ...] = ()

    @property
    def stamps_offsets(self) -> bool:
        return self.timezone_mode is not TimezoneMode.NONE


@dataclass(slots=True)
class TransformStats:
    """Diagnostics accumulated over one run."""
    records: int = 0
    shifted: int = 0
    start_stamped: int = 0
    stop_stamped: int = 0
    parse_errors: int = 0


__all__ = [
    "ProgrammeRecord",
    "ManualAdjustment",
    "AdjustmentRule",
    "TransformConfig",
    "TransformStats",
]
