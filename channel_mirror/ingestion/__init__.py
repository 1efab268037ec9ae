"""
Ingestion package for the channel mirror.

The ingestion pipeline consists of:

1. Listing (odysee.py):
   - Fetches channel pages from the Odysee claim_search API, newest first
   - Resolves each item's direct media URL from its page's JSON-LD

2. Policy (policy.py):
   - File naming, lookahead stop, date cutoff

3. Fetch (fetcher.py):
   - Runs yt-dlp for one item and cleans up partial output on failure

4. Sync (channel_sync.py):
   - The page walk tying the above to the cache and the feed

Usage:
    python -m channel_mirror --channel-name @SomeChannel --output-dir data/media
"""

from .odysee import (
    ListingError,
    MirrorError,
    ResolutionError,
    ResolvedMedia,
    fetch_channel_page,
    resolve_media_url,
)
from .channel_sync import ChannelSync, StopReason, SyncStats, sync_channel

__all__ = [
    "ChannelSync",
    "ListingError",
    "MirrorError",
    "ResolutionError",
    "ResolvedMedia",
    "StopReason",
    "SyncStats",
    "fetch_channel_page",
    "resolve_media_url",
    "sync_channel",
]
