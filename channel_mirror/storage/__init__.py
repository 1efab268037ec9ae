"""
Storage for the mirror cache.

The cache is the ground truth across runs: which items were mirrored, under
which file name, and what the feed needs to publish them.
"""

from .base import BaseCacheStore
from .local import JsonCacheStore

__all__ = [
    "BaseCacheStore",
    "JsonCacheStore",
]
