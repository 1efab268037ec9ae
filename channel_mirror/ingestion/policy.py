"""
Decisions taken for each listing item during a sync.

Per item, in this order:
  1. lookahead: if any later item on the same page is already mirrored, the
     walk finishes this page and requests no further page;
  2. cutoff: an item older than the configured date stops the walk at once;
  3. on-disk skip: an item whose output file exists is recorded, not fetched.
"""

import re
from datetime import datetime
from typing import Optional, Sequence

from channel_mirror.models import ChannelItem, SyncState

UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


def sanitize_filename(title: Optional[str]) -> str:
    """Replace characters that are unsafe in file names with "_"."""
    if not title:
        return "untitled"
    return UNSAFE_FILENAME_CHARS.sub("_", title)


def output_extension(audio_only: bool) -> str:
    return ".m4a" if audio_only else ".mp4"


def output_basename(title: Optional[str], audio_only: bool) -> str:
    """File name an item is stored under, e.g. "Episode 1_ Intro.m4a"."""
    return sanitize_filename(title) + output_extension(audio_only)


def upcoming_item_known(
    items: Sequence[ChannelItem], index: int, state: SyncState, audio_only: bool
) -> bool:
    """
    Check whether any item after ``index`` on the current page is already mirrored.

    Listings are newest first, so a known item further down the page means
    everything older has been mirrored by an earlier run.
    """
    for upcoming in items[index + 1:]:
        if state.is_known(upcoming.source_url, output_basename(upcoming.title, audio_only)):
            return True
    return False


def is_past_cutoff(item: ChannelItem, oldest_date: Optional[datetime]) -> bool:
    """True when a cutoff is set and the item was published strictly before it."""
    if oldest_date is None or item.published_at is None:
        return False
    return item.published_at < oldest_date.timestamp()
