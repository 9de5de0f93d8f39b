"""Command line entry point.

Reads one or more XMLTV documents, corrects programme start/stop times and
writes a single XMLTV document.
"""
import logging
import sys
from typing import Optional

import httpx
import typer
from lxml import etree # type: ignore
from pydantic import ValidationError

from epg_timefix.config import ConfigError, CustomSettings, setup_logging
from epg_timefix.services.transformer import StreamTransformer, build_transform_config
from epg_timefix.services.xmltv_stream import STDIO, run_pipeline

logger = logging.getLogger(__name__)

EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2

app = typer.Typer(
    name="epg-timefix",
    help="Correct and timezone-stamp XMLTV programme times",
    add_completion=False,
)


@app.command()
def run(
    sources: Optional[list[str]] = typer.Argument(
        None, help="XMLTV files or HTTP(S) URLs; '-' or nothing reads standard input"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output file ('-' for standard output)"
    ),
    timezone_mode: Optional[str] = typer.Option(
        None, "--timezone", "-t", help="none, auto, +HHMM or an IANA zone name"
    ),
    local_timezone: Optional[str] = typer.Option(
        None, "--local-timezone", help="Zone for naive times (default: host zone)"
    ),
    region: Optional[int] = typer.Option(
        None, "--region", help="Region selector (63 enables the ABC1 fixup)"
    ),
    channel_adjust: Optional[str] = typer.Option(
        None, "--channel-adjust", help="Shift one channel: 'NAME,MINUTES'"
    ),
    channel_map: Optional[str] = typer.Option(
        None, "--channel-map", help="JSON file mapping channel names to ids"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"
    ),
) -> None:
    """Correct programme start/stop times and stamp UTC offsets."""
    setup_logging(log_level or "INFO")

    overrides = {
        "output_path": output,
        "timezone_mode": timezone_mode,
        "local_timezone": local_timezone,
        "region": region,
        "channel_adjust": channel_adjust,
        "channel_map_path": channel_map,
        "log_level": log_level,
    }

    try:
        settings = CustomSettings(**{key: value for key, value in overrides.items() if value is not None})
        setup_logging(settings.log_level)
        config = build_transform_config(settings)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    sink = sys.stdout.buffer if settings.output_path == STDIO else settings.output_path

    try:
        run_pipeline(sources or [STDIO], sink, StreamTransformer(config), settings)
    except etree.XMLSyntaxError as e:
        logger.error(f"Malformed XMLTV input: {e}")
        raise typer.Exit(EXIT_RUNTIME_ERROR)
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch XMLTV source: {e}")
        raise typer.Exit(EXIT_RUNTIME_ERROR)
    except OSError as e:
        logger.error(f"I/O error: {e}")
        raise typer.Exit(EXIT_RUNTIME_ERROR)


def main() -> None:
    """Entry point for the epg-timefix CLI."""
    app()
