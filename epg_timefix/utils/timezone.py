"""
Date and Time utilities

This module handles all XMLTV timestamp parsing, offset calculation and formatting.
Centralizes local-time semantics so that naive wall-clock values and the offsets
stamped onto output are always computed against the same zone.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import os
import re

logger = logging.getLogger(__name__)

XMLTV_TIME_PATTERN = re.compile(
    r"^(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})(?: ([+-])(\d{2})(\d{2}))?$"
)
OFFSET_PATTERN = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_OFFSET_SUFFIX = re.compile(r"^\s*\d{14}\s*[+-]")

HOST_ZONE_FILE = "/etc/localtime"


class ParseError(ValueError):
    """Raised when an XMLTV timestamp cannot be turned into a usable instant"""
    pass


class TimezoneMode(str, Enum):
    """Policy for stamping output timestamps with an explicit UTC offset"""
    NONE = "none"
    AUTO = "auto"
    EXPLICIT = "explicit"


def parse_xmltv_time(value: str, zone: tzinfo) -> int:
    """
    Parse an XMLTV timestamp into an instant (seconds since the epoch)

    The date/time fields are always read as local wall-clock time in ``zone``.
    When an offset suffix is present the result is reconciled by the difference
    between the zone's offset at that instant and the embedded offset.

    Args:
        value: XMLTV time like '20130401060000' or '20130401060000 +1000'
        zone: Zone supplying local-time rules

    Returns:
        Positive integer instant

    Raises:
        ParseError: If the string does not match the XMLTV pattern, is not a
            real date/time, or resolves to a non-positive instant
    """
    match = XMLTV_TIME_PATTERN.match(value.strip()) if value else None
    if match is None:
        raise ParseError(f"Invalid XMLTV timestamp: '{value}'")

    year, month, day, hour, minute, second = (int(part) for part in match.group(1, 2, 3, 4, 5, 6))

    try:
        local = datetime(year, month, day, hour, minute, second, tzinfo=zone)
        instant = int(local.timestamp())
    except (ValueError, OverflowError, OSError) as e:
        raise ParseError(f"Invalid XMLTV timestamp: '{value}'") from e

    sign = match.group(7)
    if sign:
        embedded = int(match.group(8)) * 3600 + int(match.group(9)) * 60
        if sign == "-":
            embedded = -embedded
        instant += offset_seconds(instant, zone) - embedded

    if instant <= 0:
        raise ParseError(f"XMLTV timestamp resolves to no usable date: '{value}'")

    return instant


def format_offset(instant: int, zone: tzinfo) -> str:
    """Return the '+HHMM'/'-HHMM' offset in effect in ``zone`` at ``instant``"""
    local = _to_local(instant, zone)
    return local.strftime("%z")[:5]


def offset_seconds(instant: int, zone: tzinfo) -> int:
    """
    Signed UTC offset in seconds for ``zone`` at ``instant``

    DST-aware: two instants on either side of a transition return different values.
    """
    text = format_offset(instant, zone)
    total = int(text[1:3]) * 3600 + int(text[3:5]) * 60
    return -total if text[0] == "-" else total


def format_xmltv_time(instant: int, zone: tzinfo, with_offset: bool = False) -> str:
    """
    Serialize an instant as an XMLTV timestamp

    Seconds are always written as '00'.

    Args:
        instant: Seconds since the epoch
        zone: Zone used for the wall-clock fields and the offset
        with_offset: Append ' +HHMM' computed for the instant

    Returns:
        XMLTV time like '20130401060000' or '20130401060000 +1000'
    """
    local = _to_local(instant, zone)
    text = local.strftime("%Y%m%d%H%M") + "00"
    if with_offset:
        text = f"{text} {format_offset(instant, zone)}"
    return text


def has_offset(value: str) -> bool:
    """True if a sign character follows the date/time digits"""
    return bool(_OFFSET_SUFFIX.match(value))


def shift_xmltv_time(value: str, minutes: int, zone: tzinfo) -> str:
    """Move a timestamp by ``minutes`` and re-emit it without an offset suffix"""
    instant = parse_xmltv_time(value, zone) + minutes * 60
    return format_xmltv_time(instant, zone)


def stamp_xmltv_time(value: str, zone: tzinfo) -> str:
    """Re-emit a naive timestamp with the offset computed for its instant"""
    return format_xmltv_time(parse_xmltv_time(value, zone), zone, with_offset=True)


def _to_local(instant: int, zone: tzinfo) -> datetime:
    try:
        return datetime.fromtimestamp(instant, tz=zone)
    except (ValueError, OverflowError, OSError) as e:
        raise ParseError(f"Instant out of range: {instant}") from e


def load_zone(name: str) -> tzinfo:
    """
    Build a tzinfo from an IANA name or a fixed '+HHMM' offset

    Raises:
        ValueError: If the name is neither a known zone nor a valid offset
    """
    offset_match = OFFSET_PATTERN.match(name.strip())
    if offset_match:
        sign, hours, minutes = offset_match.groups()
        delta = timedelta(hours=int(hours), minutes=int(minutes))
        if delta >= timedelta(hours=24):
            raise ValueError(f"Offset out of range: '{name}'")
        return timezone(-delta if sign == "-" else delta)

    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: '{name}'") from e


def host_local_zone() -> tzinfo:
    """
    Resolve the host's local zone with its full DST rules

    Honors the TZ environment variable first, then /etc/localtime.
    Falls back to UTC when neither is usable.
    """
    tz_name = os.environ.get("TZ", "").lstrip(":")
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("TZ=%s is not a known zone, ignoring it", tz_name)

    try:
        with open(HOST_ZONE_FILE, "rb") as fh:
            return ZoneInfo.from_file(fh, key="localtime")
    except (OSError, ValueError) as e:
        logger.warning("Could not read host timezone from %s (%s), using UTC", HOST_ZONE_FILE, e)
        return timezone.utc


def resolve_timezone_mode(mode: str, local_timezone: str | None = None) -> tuple[TimezoneMode, tzinfo]:
    """
    Turn the configured timezone mode into a stamping policy and a zone

    'none' and 'auto' use the local zone (``local_timezone`` or the host's).
    Any other value is an explicit zone that replaces the local zone for both
    parsing and stamping.

    Returns:
        Tuple of (mode, zone)
    """
    normalized = (mode or "none").strip()
    lowered = normalized.lower()

    if lowered in (TimezoneMode.NONE.value, TimezoneMode.AUTO.value):
        zone = load_zone(local_timezone) if local_timezone else host_local_zone()
        return TimezoneMode(lowered), zone

    return TimezoneMode.EXPLICIT, load_zone(normalized)
