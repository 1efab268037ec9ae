"""
RSS 2.0 feed generation from the mirror cache.

The feed is a pure projection of the cache records: building it never touches
the cache. Records are ordered newest first; records without a date sort as
if published "now" and carry no pubDate, and equal dates keep their cache
order. Rendering the same records twice gives the same bytes.
"""

import logging
import os
import time
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Iterable, Optional, Union
from xml.etree import ElementTree as ET

from channel_mirror.logger import log_with_timer
from channel_mirror.models import CacheRecord, FeedDocument

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
MIME_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".webm": "video/webm",
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg",
}


def mime_type_for(filename: str) -> str:
    return MIME_TYPES.get(os.path.splitext(filename)[1].lower(), DEFAULT_MIME_TYPE)


def enclosure_url(url_prefix: str, filename: str) -> str:
    """Public URL of a mirrored file: "<prefix>/<basename>"."""
    return f"{url_prefix.rstrip('/')}/{os.path.basename(filename)}"


def format_pub_date(timestamp: int) -> str:
    """RFC 1123 date, e.g. "Wed, 01 Mar 2023 00:00:00 GMT"."""
    value = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return format_datetime(value, usegmt=True)


def build_feed_document(
    title: str, records: Iterable[CacheRecord], now: Optional[float] = None
) -> FeedDocument:
    """Order records by date, newest first (stable; undated records count as now)."""
    reference = time.time() if now is None else now
    ordered = sorted(
        records,
        key=lambda record: record.date if record.date is not None else reference,
        reverse=True,
    )
    return FeedDocument(title=title, records=ordered)


def render_feed(document: FeedDocument) -> bytes:
    """Serialize a FeedDocument as RSS 2.0 XML (UTF-8, with declaration)."""
    rss = ET.Element("rss", attrib={"version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = document.title
    ET.SubElement(channel, "description").text = document.title

    for record in document.records:
        entry = ET.SubElement(channel, "item")
        ET.SubElement(entry, "title").text = record.title
        ET.SubElement(entry, "description").text = record.description or ""
        if record.date is not None:
            ET.SubElement(entry, "pubDate").text = format_pub_date(record.date)
        if record.source_url:
            guid = ET.SubElement(entry, "guid", attrib={"isPermaLink": "false"})
            guid.text = record.source_url

        try:
            length = os.path.getsize(record.file)
        except OSError:
            length = 0
        ET.SubElement(
            entry,
            "enclosure",
            attrib={
                "url": record.url,
                "type": mime_type_for(record.file),
                "length": str(length),
            },
        )

    tree = ET.ElementTree(rss)
    ET.indent(tree)
    return ET.tostring(rss, encoding="utf-8", xml_declaration=True)


@log_with_timer(__name__)
def write_feed(
    title: str, records: Iterable[CacheRecord], path: Union[str, Path]
) -> Path:
    """
    Build and write the feed document.

    Raises:
        OSError: If the feed file cannot be written
    """
    document = build_feed_document(title, records)
    feed_path = Path(path)
    feed_path.parent.mkdir(parents=True, exist_ok=True)
    feed_path.write_bytes(render_feed(document))
    logger.info(f"RSS written to {feed_path} ({len(document.records)} items)")
    return feed_path
