"""
File operation utilities

This module fetches remote XMLTV sources into temporary files and cleans them up.
"""
import asyncio
import logging
import tempfile
from pathlib import Path

import aiofiles
import httpx


logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http://", "https://")


def is_remote_source(source: str) -> bool:
    """True for HTTP/HTTPS sources that must be downloaded first"""
    return source.lower().startswith(REMOTE_SCHEMES)


async def download_file(
    url: str,
    filename: str,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0
) -> Path:
    """
    Download an XMLTV source into the system temp directory

    Timeouts, connection errors and 5xx responses are retried with
    exponential backoff (wait = backoff_factor ^ attempt). 4xx responses
    fail immediately.

    Args:
        url: Source URL
        filename: Name for the temporary file
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff base

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPError: If the download fails after all attempts
    """
    logger.info(f"Downloading XMLTV source {url}...")
    target = Path(tempfile.gettempdir()) / filename
    last_error: httpx.HTTPError | None = None

    for attempt in range(1, max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()

            async with aiofiles.open(target, "wb") as f:
                await f.write(response.content)

            logger.info(f"Downloaded {len(response.content) / 1024:.1f} KB to {target}")
            return target

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status < 500:
                logger.error(f"HTTP {status} fetching {url}, not retrying")
                raise
            last_error = e
            reason = f"HTTP {status}"

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_error = e
            reason = type(e).__name__

        if attempt < max_retries:
            wait_time = backoff_factor ** (attempt - 1)
            logger.warning(
                f"Download attempt {attempt}/{max_retries} failed ({reason}), retrying in {wait_time:.1f}s"
            )
            await asyncio.sleep(wait_time)
        else:
            logger.error(f"Download of {url} failed after {max_retries} attempts ({reason})")

    if last_error is not None:
        raise last_error
    raise RuntimeError(f"Failed to download {url} after {max_retries} attempts")


def cleanup_temp_file(file_path: Path | None) -> bool:
    """
    Delete a downloaded source file

    Returns:
        True if the file was removed, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Removed temporary file {file_path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
