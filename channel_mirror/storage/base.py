from abc import ABC, abstractmethod

from channel_mirror.models import CacheRecord


class BaseCacheStore(ABC):
    """
    Abstract base class for the durable record of mirrored items.

    The cache bridges runs: it is loaded once at the start of a sync and
    written back from the in-memory record list. Neither operation may abort
    a run; implementations log their failures instead of raising.
    """

    @abstractmethod
    def load(self) -> list[CacheRecord]:
        """Load previously mirrored records.

        Returns:
            list[CacheRecord]: The persisted records, or an empty list when
            nothing usable is stored.
        """
        pass

    @abstractmethod
    def save(self, records: list[CacheRecord]) -> bool:
        """Replace the persisted records with ``records``.

        Args:
            records (list[CacheRecord]): The full, ordered record list.

        Returns:
            bool: True if the records were written, False otherwise.
        """
        pass
