"""
XMLTV stream service

Reads XMLTV documents element by element, hands programmes to the transformer
and writes every element back out in arrival order.
"""
import asyncio
import logging
import sys
from collections.abc import Callable, Iterator, Sequence
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import BinaryIO

from lxml import etree # type: ignore

from epg_timefix.config import CustomSettings
from epg_timefix.services.transform_types import ProgrammeRecord, TransformStats
from epg_timefix.services.transformer import StreamTransformer
from epg_timefix.utils.file_operations import cleanup_temp_file, download_file, is_remote_source
from epg_timefix.utils.logging_helpers import (
    log_section_end,
    log_section_start,
    log_source_processing,
    log_transform_summary,
)

logger = logging.getLogger(__name__)

XMLTV_DOCTYPE = '<!DOCTYPE tv SYSTEM "xmltv.dtd">'
STDIO = "-"


def iter_xmltv_elements(
    source: str | BinaryIO,
    on_root: Callable[[etree._Element], None] | None = None
) -> Iterator[etree._Element]:
    """
    Yield each top-level element under <tv> as soon as it is complete

    Elements are freed once the consumer resumes, so memory use stays flat
    regardless of document size.

    Args:
        source: File path or binary stream
        on_root: Called with the root element when it opens (attributes only)

    Raises:
        etree.XMLSyntaxError: If the document is malformed
        OSError: If the source can't be read
    """
    context = etree.iterparse(
        source,
        events=("start", "end"),
        remove_blank_text=True,
        huge_tree=True
    )
    depth = 0

    for event, element in context:
        if event == "start":
            if depth == 0:
                if element.tag != "tv":
                    logger.warning(f"Unexpected root element <{element.tag}>, expected <tv>")
                if on_root is not None:
                    on_root(element)
            depth += 1
            continue

        depth -= 1
        if depth != 1:
            continue

        yield element

        element.clear()
        while element.getprevious() is not None:
            del element.getparent()[0]


def record_from_element(element: etree._Element) -> ProgrammeRecord | None:
    """Build a record from a <programme>, or None for anything else"""
    if element.tag != "programme":
        return None

    channel = element.get("channel")
    start = element.get("start")
    if not channel or not start:
        logger.debug("Passing through programme with missing channel or start attribute")
        return None

    return ProgrammeRecord(
        channel=channel,
        start=start,
        stop=element.get("stop"),
        payload=element
    )


def apply_record(record: ProgrammeRecord) -> etree._Element:
    """Write a record's start/stop back onto its source element"""
    element = record.payload
    element.set("start", record.start)
    if record.stop is not None:
        element.set("stop", record.stop)
    return element


class XmltvWriter:
    """Incremental XMLTV writer on top of etree.xmlfile"""

    def __init__(self, sink: str | BinaryIO):
        self._sink = sink
        self._stack = ExitStack()
        self._xf = None
        self._root_open = False

    def __enter__(self) -> "XmltvWriter":
        sink = self._sink
        if isinstance(sink, (str, Path)):
            sink = self._stack.enter_context(open(sink, "wb"))
        self._xf = self._stack.enter_context(etree.xmlfile(sink, encoding="UTF-8"))
        self._xf.write_declaration()
        self._xf.write_doctype(XMLTV_DOCTYPE)
        return self

    def open_root(self, root: etree._Element | None = None) -> None:
        """Open <tv> with the first source's attributes; later calls are ignored"""
        if self._root_open:
            return
        attrib = dict(root.attrib) if root is not None else {}
        self._stack.enter_context(self._xf.element("tv", attrib))
        self._xf.write("\n")
        self._root_open = True

    def write(self, element: etree._Element) -> None:
        self.open_root()
        self._xf.write(element, pretty_print=True)

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.open_root()
        return self._stack.__exit__(exc_type, exc, tb)


@contextmanager
def open_source(source: str, index: int, settings: CustomSettings) -> Iterator[str | BinaryIO]:
    """
    Resolve a source argument into something iterparse can read

    '-' is standard input, HTTP/HTTPS URLs are downloaded to a temporary
    file first and removed afterwards, anything else is a local path.
    """
    if source == STDIO:
        yield sys.stdin.buffer
        return

    if not is_remote_source(source):
        yield source
        return

    temp_file: Path | None = None
    try:
        temp_file = asyncio.run(download_file(
            source,
            f"epg_timefix_source_{index}.xml",
            timeout=settings.download_timeout_sec,
            max_retries=settings.download_max_retries,
            backoff_factor=settings.download_backoff_factor
        ))
        yield str(temp_file)
    finally:
        cleanup_temp_file(temp_file)


def run_pipeline(
    sources: Sequence[str],
    output: str | BinaryIO,
    transformer: StreamTransformer,
    settings: CustomSettings
) -> TransformStats:
    """
    Stream every source through the transformer into a single XMLTV document

    Args:
        sources: Paths, URLs or '-' in processing order
        output: Output path or binary stream
        transformer: Configured transformer; its counters are returned
        settings: Run settings (download behaviour)

    Returns:
        Counters for the whole run
    """
    log_section_start(logger, "XMLTV timestamp correction")

    with XmltvWriter(output) as writer:
        for idx, source in enumerate(sources, start=1):
            log_source_processing(logger, idx, len(sources), source)
            with open_source(source, idx, settings) as handle:
                records = _programme_records(iter_xmltv_elements(handle, on_root=writer.open_root), writer)
                transformer.run(records, lambda record: writer.write(apply_record(record)))

    if output is sys.stdout.buffer:
        output.flush()

    log_transform_summary(logger, transformer.stats)
    log_section_end(logger, "XMLTV timestamp correction")
    return transformer.stats


def _programme_records(elements: Iterator[etree._Element], writer: XmltvWriter) -> Iterator[ProgrammeRecord]:
    """Yield programme records; every other element is written straight through"""
    for element in elements:
        record = record_from_element(element)
        if record is None:
            writer.write(element)
        else:
            yield record
