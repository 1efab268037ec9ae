"""RSS feed publication of the mirrored items."""

from .builder import (
    build_feed_document,
    enclosure_url,
    mime_type_for,
    render_feed,
    write_feed,
)

__all__ = [
    "build_feed_document",
    "enclosure_url",
    "mime_type_for",
    "render_feed",
    "write_feed",
]
