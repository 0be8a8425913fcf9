"""In-memory 340B eligibility cache with whole-table swap.

Readers take a single reference to the current snapshot and never see a
partially built table. Snapshots are immutable mappings, so a reader that
grabbed the old snapshot keeps a consistent view until it drops it.
"""

import logging
import threading
from datetime import datetime, timezone
from types import MappingProxyType

from drugs_340b.ingest.normalizers import fuzzy_match_drug_partial
from drugs_340b.models import (
    CACHE_INFO_PREFIX,
    EMPTY_TABLE,
    EligibilityRecord,
    EligibilityTable,
)

logger = logging.getLogger(__name__)


class EligibilityCache:
    """Holds the current NDC -> record snapshot.

    ``load`` replaces the whole table; ``lookup`` is a point read. There is
    no per-key update, eviction or versioning.
    """

    def __init__(self) -> None:
        self._table: EligibilityTable = EMPTY_TABLE
        self._loaded_at: datetime | None = None
        self._write_lock = threading.Lock()

    def load(self, table: EligibilityTable) -> None:
        """Install a new snapshot, visible to every later lookup.

        Args:
            table: Complete NDC -> record mapping. A plain dict is copied
                into a read-only mapping first.
        """
        if not isinstance(table, MappingProxyType):
            table = MappingProxyType(dict(table))

        with self._write_lock:
            self._table = table
            self._loaded_at = datetime.now(timezone.utc)

        logger.info(f"NDC cache updated with {len(table)} records")

    def lookup(self, ndc: str) -> EligibilityRecord | None:
        """Return the record for an NDC, or None if it is not cached."""
        return self._table.get(ndc)

    def snapshot(self) -> EligibilityTable:
        """Return the current table for multi-key reads."""
        return self._table

    def search_by_name(
        self,
        name: str,
        threshold: int = 80,
        limit: int = 10,
    ) -> list[tuple[EligibilityRecord, int]]:
        """Fuzzy-match a drug name against cached drug names."""
        return fuzzy_match_drug_partial(
            name, self._table.values(), threshold=threshold, limit=limit
        )

    @property
    def size(self) -> int:
        return len(self._table)

    @property
    def is_loaded(self) -> bool:
        return self._loaded_at is not None

    @property
    def loaded_at(self) -> datetime | None:
        return self._loaded_at

    @property
    def info(self) -> str:
        """Description used as ``cache_info`` in tool results."""
        if not self.is_loaded:
            return "Not loaded"
        return f"{CACHE_INFO_PREFIX} ({self.size} records)"
