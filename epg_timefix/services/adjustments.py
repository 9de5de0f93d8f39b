"""
Channel Adjustment Service

Builds the per-channel minute corrections once at startup and resolves the
net delta for each programme's channel.
"""
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from epg_timefix.config import REGIONAL_FIXUP_SELECTOR, ConfigError
from epg_timefix.services.transform_types import AdjustmentRule, ManualAdjustment


logger = logging.getLogger(__name__)

# Region 63 receives ABC1 listings with a systematic half-hour error
REGIONAL_FIXUP_CHANNEL = "ABC1"
REGIONAL_FIXUP_MINUTES = -30

_channel_map_adapter = TypeAdapter(dict[str, str])


def load_channel_map(path: Path | str) -> dict[str, str]:
    """
    Load a channel display name -> channel id mapping from a JSON file

    Args:
        path: Path to a JSON object like {"ABC1": "abc1.au", "SBS": "sbs.au"}

    Returns:
        Mapping of display name to channel id

    Raises:
        ConfigError: If the file can't be read or isn't a flat string mapping
    """
    path = Path(path)
    logger.debug(f"Loading channel map: {path}")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read channel map '{path}': {e}") from e

    try:
        channel_map = _channel_map_adapter.validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid channel map '{path}': {e.error_count()} error(s)") from e

    logger.info(f"Loaded channel map with {len(channel_map)} channels from {path}")
    return channel_map


def build_adjustment_rules(
    channel_map: Mapping[str, str] | None,
    region: int | None = None,
    manual: ManualAdjustment | None = None
) -> tuple[AdjustmentRule, ...]:
    """
    Resolve the active adjustment rules, regional fixup first

    Args:
        channel_map: Display name -> channel id, or None if none was loaded
        region: Configured region selector
        manual: Operator-supplied adjustment

    Returns:
        Tuple of active rules in application order

    Raises:
        ConfigError: If an adjustment is requested without a channel map, or
            the manual adjustment names a channel the map doesn't know
    """
    regional_requested = region == REGIONAL_FIXUP_SELECTOR
    manual_requested = manual is not None and manual.minutes != 0

    if (regional_requested or manual_requested) and channel_map is None:
        raise ConfigError("Channel adjustments require a channel map (--channel-map)")

    rules: list[AdjustmentRule] = []

    if regional_requested:
        channel_id = channel_map.get(REGIONAL_FIXUP_CHANNEL)
        if channel_id:
            rules.append(AdjustmentRule(
                channel_id=channel_id,
                delta_minutes=REGIONAL_FIXUP_MINUTES,
                kind="regional"
            ))
            logger.info(
                "Regional fixup active: %s (%s) %+d minutes",
                REGIONAL_FIXUP_CHANNEL, channel_id, REGIONAL_FIXUP_MINUTES
            )
        else:
            logger.warning(
                "Region %s selected but channel map has no %s entry - regional fixup disabled",
                region, REGIONAL_FIXUP_CHANNEL
            )

    if manual_requested:
        channel_id = channel_map.get(manual.channel_name)
        if not channel_id:
            raise ConfigError(
                f"Channel '{manual.channel_name}' from channel adjustment is not in the channel map"
            )
        rules.append(AdjustmentRule(
            channel_id=channel_id,
            delta_minutes=manual.minutes,
            kind="manual"
        ))
        logger.info(
            "Manual adjustment active: %s (%s) %+d minutes",
            manual.channel_name, channel_id, manual.minutes
        )

    return tuple(rules)


def resolve_delta_minutes(channel: str, rules: Sequence[AdjustmentRule]) -> int:
    """Sum of all rule deltas targeting ``channel`` (0 if none match)"""
    return sum(rule.delta_minutes for rule in rules if rule.channel_id == channel)
