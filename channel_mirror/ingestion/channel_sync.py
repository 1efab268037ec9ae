"""
Channel synchronization: the page walk that mirrors new items.

One run:
  1. load the cache into a SyncState;
  2. fetch listing pages newest first, starting at page 1;
  3. per item, apply the policy (lookahead, cutoff, already known, on disk)
     and materialize new items one at a time;
  4. save the cache (after each downloaded item, and once at the end);
  5. optionally write the RSS feed.

A listing failure ends the walk but what was already mirrored is still saved.
Per-item failures are logged and the walk moves on.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from channel_mirror.config import MirrorConfig
from channel_mirror.feed import enclosure_url, write_feed
from channel_mirror.ingestion.fetcher import (
    Resolver,
    ToolRunner,
    materialize,
    run_fetch_tool,
)
from channel_mirror.ingestion.odysee import (
    ListingError,
    fetch_channel_page,
    resolve_media_url,
)
from channel_mirror.ingestion.policy import (
    is_past_cutoff,
    output_basename,
    upcoming_item_known,
)
from channel_mirror.logger import log_function
from channel_mirror.models import CacheRecord, ChannelItem, SyncState
from channel_mirror.storage import BaseCacheStore, JsonCacheStore

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str, int, int], list[ChannelItem]]


class StopReason(str, Enum):
    EXHAUSTED = "exhausted"
    LAST_PAGE = "last_page"
    CAUGHT_UP = "caught_up"
    CUTOFF = "cutoff"
    LISTING_ERROR = "listing_error"


@dataclass
class SyncStats:
    pages: int = 0
    downloaded: int = 0
    skipped_existing: int = 0
    skipped_known: int = 0
    failed: int = 0
    stop_reason: Optional[StopReason] = None
    feed_path: Optional[Path] = None


def make_record(
    item: ChannelItem, output_path: Path, url_prefix: str
) -> CacheRecord:
    return CacheRecord(
        title=item.title,
        file=str(output_path),
        url=enclosure_url(url_prefix, output_path.name),
        date=item.published_at,
        description=item.title,
        source_url=item.source_url,
    )


class ChannelSync:
    """
    A single sync run over one channel.

    Collaborators are injectable so the walk can be driven without network
    access or yt-dlp.
    """

    def __init__(
        self,
        config: MirrorConfig,
        store: Optional[BaseCacheStore] = None,
        fetch_page: PageFetcher = fetch_channel_page,
        resolver: Resolver = resolve_media_url,
        runner: ToolRunner = run_fetch_tool,
        flush_each_item: bool = True,
    ):
        self.config = config
        self.store = store or JsonCacheStore(config.cache_path)
        self.fetch_page = fetch_page
        self.resolver = resolver
        self.runner = runner
        self.flush_each_item = flush_each_item
        self.state = SyncState()
        self.stats = SyncStats()

    def run(self) -> SyncStats:
        """Run the whole sync and return its statistics."""
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        self.state = SyncState.from_records(self.store.load())
        self.stats = SyncStats()

        try:
            self.stats.stop_reason = self.walk()
        finally:
            self.store.save(self.state.records)

        if self.config.rss:
            self.publish_feed()

        logger.info(f"Sync finished: {self.stats}")
        return self.stats

    def walk(self) -> StopReason:
        """Fetch pages until the channel is exhausted or a stop rule fires."""
        page_size = self.config.page_size
        while True:
            page = self.state.page
            print(f"Fetching page {page} (page_size={page_size})")
            try:
                items = self.fetch_page(self.config.channel_name, page, page_size)
            except ListingError as e:
                print(f"✗ Failed to fetch channel listings: {e}")
                logger.error(f"Failed to fetch page {page}: {e}")
                return StopReason.LISTING_ERROR
            self.stats.pages += 1

            if not items:
                print("No more items found")
                return StopReason.EXHAUSTED

            reason = self.walk_page(items)
            if reason is not None:
                return reason

            if len(items) < page_size:
                print("Last page of results reached")
                return StopReason.LAST_PAGE
            self.state.advance_page()

    def walk_page(self, items: list[ChannelItem]) -> Optional[StopReason]:
        """
        Process one page in listing order.

        Returns:
            The reason to stop the walk, or None to continue with the next page
        """
        audio_only = self.config.audio_only
        caught_up = False

        for index, item in enumerate(items):
            if not caught_up and upcoming_item_known(items, index, self.state, audio_only):
                print("Encountered an already-known item further down this page; no more pages will be requested")
                logger.info(f"Caught up with the cache at page {self.state.page}")
                caught_up = True

            if is_past_cutoff(item, self.config.oldest_date):
                print(f"Reached oldest-date cutoff at {item.title}. Stopping.")
                logger.info(
                    f"Cutoff reached at {item.title} ({item.published_datetime()})"
                )
                return StopReason.CUTOFF

            basename = output_basename(item.title, audio_only)
            if self.state.is_known(item.source_url, basename):
                self.stats.skipped_known += 1
                logger.debug(f"Skipping {item.title}: already in cache")
                continue

            self.process_item(item, self.config.output_dir / basename)

        return StopReason.CAUGHT_UP if caught_up else None

    def process_item(self, item: ChannelItem, output_path: Path) -> None:
        """Record an item already on disk, or materialize it."""
        record = make_record(item, output_path, self.config.podcast_url_prefix)

        if output_path.exists():
            print(f"Skipping {item.title}: already exists")
            self.state.add_record(record)
            self.stats.skipped_existing += 1
            return

        result = materialize(
            item,
            output_path,
            self.config.audio_only,
            self.config.tools,
            resolver=self.resolver,
            runner=self.runner,
        )
        if not result.ok:
            self.stats.failed += 1
            return

        self.state.add_record(record)
        self.stats.downloaded += 1
        if self.flush_each_item:
            self.store.save(self.state.records)

    def publish_feed(self) -> None:
        try:
            self.stats.feed_path = write_feed(
                self.config.feed_title, self.state.records, self.config.feed_path
            )
            print(f"RSS written to {self.stats.feed_path}")
        except OSError as e:
            print(f"✗ Failed to write RSS feed: {e}")
            logger.error(f"Failed to write RSS feed {self.config.feed_path}: {e}")


@log_function(logger_name=__name__, log_execution_time=True)
def sync_channel(config: MirrorConfig, **collaborators) -> SyncStats:
    """
    Mirror ``config.channel_name`` into ``config.output_dir``.

    Args:
        config: Validated run configuration
        **collaborators: Optional overrides passed to ChannelSync
            (store, fetch_page, resolver, runner, flush_each_item)

    Returns:
        SyncStats for the run
    """
    return ChannelSync(config, **collaborators).run()
