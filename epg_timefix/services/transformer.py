"""
Stream Transformer

Applies channel shifts and offset stamping to each programme record, in
arrival order, and accumulates per-run diagnostics.
"""
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from epg_timefix.config import ConfigError, CustomSettings
from epg_timefix.services.adjustments import (
    build_adjustment_rules,
    load_channel_map,
    resolve_delta_minutes,
)
from epg_timefix.services.transform_types import ProgrammeRecord, TransformConfig, TransformStats
from epg_timefix.utils.timezone import (
    ParseError,
    has_offset,
    resolve_timezone_mode,
    shift_xmltv_time,
    stamp_xmltv_time,
)


logger = logging.getLogger(__name__)

TIME_FIELDS = ("start", "stop")


def build_transform_config(settings: CustomSettings) -> TransformConfig:
    """
    Resolve settings into the immutable configuration used while streaming

    Raises:
        ConfigError: If the timezone can't be resolved, the channel map can't be
            loaded, or an adjustment can't be bound to a channel
    """
    try:
        mode, zone = resolve_timezone_mode(settings.timezone_mode, settings.local_timezone)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    channel_map = None
    if settings.channel_map_path:
        channel_map = load_channel_map(settings.channel_map_path)

    rules = build_adjustment_rules(
        channel_map,
        region=settings.region,
        manual=settings.manual_adjustment,
    )

    logger.info("Timestamp zone: %s, offset stamping: %s", zone, mode.value)
    return TransformConfig(timezone_mode=mode, zone=zone, rules=rules)


def transform_field(value: str, delta_minutes: int, config: TransformConfig) -> tuple[str, bool]:
    """
    Shift and/or stamp a single timestamp

    Returns:
        Tuple of (new_value, stamped) where stamped says an offset was computed

    Raises:
        ParseError: If the timestamp is malformed
    """
    if delta_minutes:
        value = shift_xmltv_time(value, delta_minutes, config.zone)

    if config.stamps_offsets and not has_offset(value):
        return stamp_xmltv_time(value, config.zone), True

    return value, False


def transform_strict(record: ProgrammeRecord, config: TransformConfig) -> ProgrammeRecord:
    """Pure (record, config) -> record; raises ParseError on the first bad field"""
    delta = resolve_delta_minutes(record.channel, config.rules)
    changes = {}
    for name in TIME_FIELDS:
        value = getattr(record, name)
        if value is not None:
            changes[name], _ = transform_field(value, delta, config)
    return replace(record, **changes)


class StreamTransformer:
    """Per-record timestamp correction with run-level counters"""

    def __init__(self, config: TransformConfig):
        self.config = config
        self.stats = TransformStats()

    def transform(self, record: ProgrammeRecord) -> ProgrammeRecord:
        """
        Correct one record's start/stop

        A malformed field is logged, counted and left exactly as it arrived;
        the other field and the rest of the record still go through.
        """
        self.stats.records += 1
        delta = resolve_delta_minutes(record.channel, self.config.rules)
        if delta:
            self.stats.shifted += 1

        changes = {}
        for name in TIME_FIELDS:
            value = getattr(record, name)
            if value is None:
                continue

            try:
                new_value, stamped = transform_field(value, delta, self.config)
            except ParseError as e:
                self.stats.parse_errors += 1
                logger.warning("Skipping %s on channel %s: %s", name, record.channel, e)
                continue

            if stamped:
                if name == "start":
                    self.stats.start_stamped += 1
                else:
                    self.stats.stop_stamped += 1
            changes[name] = new_value

        return replace(record, **changes)

    def run(
        self,
        records: Iterable[ProgrammeRecord],
        emit: Callable[[ProgrammeRecord], None]
    ) -> TransformStats:
        """Transform and emit every record in order; returns the run's counters"""
        for record in records:
            emit(self.transform(record))
        return self.stats
