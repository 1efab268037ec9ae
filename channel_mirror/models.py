"""
Data models for the channel mirror.

Models:
    ChannelItem: One entry of the remote channel listing (immutable)
    CacheRecord: One mirrored item, as persisted in the JSON cache
    SyncState: Per-run bookkeeping (page cursor, known items, records)
    FeedDocument: Ordered projection of the records for the RSS feed

The cache file stores records with the keys
``title, file, url, date, description, sourceUrl``; ``date`` is epoch seconds
or null.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass(frozen=True)
class ChannelItem:
    """A single listing entry. Listings arrive newest first."""

    title: str
    published_at: Optional[int]
    source_url: str

    def published_datetime(self) -> Optional[datetime]:
        if self.published_at is None:
            return None
        return datetime.fromtimestamp(self.published_at, tz=timezone.utc)


@dataclass
class CacheRecord:
    """A mirrored item: the local file plus what the feed needs to publish it."""

    title: str
    file: str
    url: str
    date: Optional[int] = None
    description: str = ""
    source_url: Optional[str] = None

    @property
    def basename(self) -> str:
        return os.path.basename(self.file)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "file": self.file,
            "url": self.url,
            "date": self.date,
            "description": self.description,
            "sourceUrl": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheRecord":
        """
        Build a record from a cache entry.

        Raises:
            ValueError: If the entry is not a mapping, lacks a file name, or
                carries a sourceUrl or date of the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"cache entry is not an object: {data!r}")
        file = data.get("file")
        if not file or not isinstance(file, str):
            raise ValueError(f"cache entry has no file: {data!r}")
        source_url = data.get("sourceUrl") or None
        if source_url is not None and not isinstance(source_url, str):
            raise ValueError(f"cache entry has an invalid sourceUrl: {data!r}")
        title = data.get("title") or os.path.splitext(os.path.basename(file))[0]
        return cls(
            title=str(title),
            file=file,
            url=str(data.get("url") or ""),
            date=coerce_timestamp(data.get("date")),
            description=str(data.get("description") or ""),
            source_url=source_url,
        )


def coerce_timestamp(value: Any) -> Optional[int]:
    """
    Accept epoch seconds or an ISO-8601 string (older caches) and return epoch seconds.

    Raises:
        ValueError: If the value is not a date, or is outside the range a
            datetime can represent
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid date: {value!r}")
    try:
        if isinstance(value, (int, float)):
            timestamp = int(value)
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            timestamp = int(parsed.timestamp())
        else:
            raise ValueError(f"invalid date: {value!r}")
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"date out of range: {value!r}") from e
    return timestamp


@dataclass
class SyncState:
    """
    Bookkeeping owned by a single sync run.

    Seeded from the persisted cache, appended to as items are materialized and
    handed back to the cache store at the end of the run. ``add_record`` is the
    only way records enter the state, which keeps source URLs and output
    basenames unique.
    """

    page: int = 1
    known_urls: set[str] = field(default_factory=set)
    known_basenames: set[str] = field(default_factory=set)
    records: list[CacheRecord] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: list[CacheRecord]) -> "SyncState":
        state = cls()
        for record in records:
            state.add_record(record)
        return state

    def is_known(self, source_url: Optional[str], basename: Optional[str]) -> bool:
        if source_url and source_url in self.known_urls:
            return True
        return bool(basename) and basename in self.known_basenames

    def add_record(self, record: CacheRecord) -> bool:
        """Append a record unless its source URL or basename is already present."""
        if self.is_known(record.source_url, record.basename):
            return False
        self.records.append(record)
        if record.source_url:
            self.known_urls.add(record.source_url)
        self.known_basenames.add(record.basename)
        return True

    def advance_page(self) -> int:
        self.page += 1
        return self.page


@dataclass
class FeedDocument:
    """Feed title plus records in publication order (newest first)."""

    title: str
    records: list[CacheRecord]
