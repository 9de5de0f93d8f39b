from pathlib import Path
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from epg_timefix.services.transform_types import ManualAdjustment
from epg_timefix.utils.timezone import load_zone


logger = logging.getLogger(__name__)

REGIONAL_FIXUP_SELECTOR = 63


class ConfigError(Exception):
    """Raised when a requested feature is missing the configuration it depends on"""
    pass


def parse_manual_adjustment(value: str) -> ManualAdjustment:
    """
    Parse a 'channel-name,minutes' pair

    The name may itself contain commas; the minutes follow the last one.

    Raises:
        ValueError: If the value is not a name followed by an integer
    """
    name, sep, minutes = value.rpartition(",")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Channel adjustment must look like 'name,minutes': '{value}'")
    try:
        return ManualAdjustment(channel_name=name, minutes=int(minutes.strip()))
    except ValueError as exc:
        raise ValueError(f"Channel adjustment minutes must be an integer: '{value}'") from exc


class CustomSettings(BaseSettings):
    """Run settings loaded from environment variables, .env and the command line.

    Validates configuration at startup to catch misconfiguration before any
    record is streamed.
    """

    timezone_mode: str = "none"  # none, auto, +HHMM or an IANA zone
    local_timezone: str | None = None  # Host zone when unset
    region: int | None = None
    channel_adjust: str | None = None  # "name,minutes"
    channel_map_path: str | None = None
    output_path: str = "-"
    download_timeout_sec: float = 120.0
    download_max_retries: int = 3
    download_backoff_factor: float = 2.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="EPG_TIMEFIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("timezone_mode")
    @classmethod
    def validate_timezone_mode(cls, value: str) -> str:
        """Accept none/auto or anything load_zone understands."""
        normalized = value.strip()
        if normalized.lower() in ("none", "auto"):
            return normalized.lower()
        load_zone(normalized)
        return normalized

    @field_validator("local_timezone")
    @classmethod
    def validate_local_timezone(cls, value: str | None) -> str | None:
        """Validate the local zone name."""
        if value is None or not value.strip():
            return None
        load_zone(value)
        return value.strip()

    @field_validator("channel_adjust")
    @classmethod
    def validate_channel_adjust(cls, value: str | None) -> str | None:
        """Validate the 'name,minutes' pair."""
        if value is None or not value.strip():
            return None
        parse_manual_adjustment(value)
        return value.strip()

    @field_validator("channel_map_path")
    @classmethod
    def validate_channel_map_path(cls, value: str | None) -> str | None:
        """Validate the channel map file exists."""
        if value is None or not value.strip():
            return None
        if not Path(value).is_file():
            raise ValueError(f"Channel map file not found: '{value}'")
        return value

    @field_validator("region")
    @classmethod
    def validate_region(cls, value: int | None) -> int | None:
        """Region selectors are positive integers."""
        if value is not None and value <= 0:
            raise ValueError("region must be > 0")
        return value

    @field_validator("download_timeout_sec", "download_backoff_factor")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure floating-point download settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("download_max_retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        """At least one download attempt is required."""
        if value <= 0:
            raise ValueError("download_max_retries must be > 0")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @property
    def manual_adjustment(self) -> ManualAdjustment | None:
        """Parsed channel adjustment, if one is configured."""
        if self.channel_adjust is None:
            return None
        return parse_manual_adjustment(self.channel_adjust)

    @model_validator(mode="after")
    def validate_adjustment_configuration(self):
        """Validate cross-field configuration."""
        if self.region is not None and self.region != REGIONAL_FIXUP_SELECTOR:
            logger.debug("Region %s has no regional fixup", self.region)

        adjustment = self.manual_adjustment
        if adjustment is not None and adjustment.minutes == 0:
            logger.warning(
                "Channel adjustment for '%s' is 0 minutes - it will have no effect",
                adjustment.channel_name,
            )

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Timezone Mode: %s", self.timezone_mode)
        logger.info("  Local Timezone: %s", self.local_timezone or "host")
        logger.info("  Region: %s", self.region if self.region is not None else "not set")
        adjustment = self.manual_adjustment
        if adjustment is not None:
            logger.info(
                "  Channel Adjustment: %s %+d minutes",
                adjustment.channel_name,
                adjustment.minutes,
            )
        logger.info("  Channel Map: %s", self.channel_map_path or "not set")
        logger.info("  Output: %s", "stdout" if self.output_path == "-" else self.output_path)
        logger.debug(
            "  Download: timeout=%.1fs retries=%s backoff=%.1f",
            self.download_timeout_sec,
            self.download_max_retries,
            self.download_backoff_factor,
        )


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
