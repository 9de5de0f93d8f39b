"""
Structured logging helpers for consistent log formatting.
"""
import logging

from epg_timefix.services.transform_types import TransformStats


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """Log the start of a processing section."""
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """Log the end of a processing section."""
    logger.info(f"Completed: {section_name}")


def log_source_processing(logger: logging.Logger, idx: int, total: int, source: str) -> None:
    """
    Log source processing header.

    Args:
        logger: Logger instance
        idx: Current source index (1-based)
        total: Total number of sources
        source: Path, URL or '-' for standard input
    """
    label = "standard input" if source == "-" else source
    logger.info(f"Processing source {idx}/{total}: {label}")


def log_transform_summary(logger: logging.Logger, stats: TransformStats) -> None:
    """
    Log end-of-run diagnostics.

    Args:
        logger: Logger instance
        stats: Counters accumulated by the transformer
    """
    logger.info(
        f"Transform summary - Programmes: {stats.records}, Shifted: {stats.shifted}, "
        f"Start stamped: {stats.start_stamped}, Stop stamped: {stats.stop_stamped}"
    )
    if stats.parse_errors:
        logger.warning(f"{stats.parse_errors} timestamp(s) could not be parsed and were left unchanged")
