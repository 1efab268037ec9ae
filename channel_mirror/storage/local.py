import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from channel_mirror.models import CacheRecord

from .base import BaseCacheStore

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """The mirror cache as a JSON file: ``{"items": [record, ...]}``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> list[CacheRecord]:
        """Load records from the cache file.

        A missing, unreadable or malformed file yields an empty list. Single
        malformed entries are dropped and the rest are kept.

        Returns:
            list[CacheRecord]: Records in their persisted order.
        """
        if not self.path.exists():
            logger.info(f"No cache at {self.path}, starting empty")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cache {self.path}: {e}")
            return []

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            logger.warning(f"Cache {self.path} has no 'items' list, ignoring it")
            return []

        records = []
        for entry in items:
            try:
                records.append(CacheRecord.from_dict(entry))
            except ValueError as e:
                logger.warning(f"Dropping malformed cache entry: {e}")

        logger.info(f"Loaded {len(records)} items from cache {self.path}")
        return records

    def save(self, records: list[CacheRecord]) -> bool:
        """Atomically rewrite the cache file from ``records``.

        The document is written to a temporary file in the same directory and
        moved over the cache, so readers never see a half-written cache.

        Returns:
            bool: True on success, False if the write failed (logged).
        """
        content = json.dumps(
            {"items": [record.to_dict() for record in records]},
            indent=2,
            ensure_ascii=False,
        )
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as file:
                file.write(content)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write cache {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_path}")
            return False

        logger.debug(f"Saved {len(records)} items to cache {self.path}")
        return True
