"""
Server-side storage and filter-match evaluation.

The server only ever sees bit positions. It cannot tell which terms produced
them; it just answers "which stored filters contain all of these bits".
"""
import numpy as np
from typing import Any, Dict, Iterable, List, Optional, Tuple
from dataclasses import dataclass, field

from vaultsearch.shared.utils import Timer

MAX_BIT_POSITION = 65535  # largest filterSize is 65536


def validate_bits(bits: Iterable[int]) -> List[int]:
    """
    Check that every bit position is an int in [0, MAX_BIT_POSITION].

    Raises:
        ValueError: on the first invalid position
    """
    checked = []
    for b in bits:
        if not isinstance(b, (int, np.integer)) or isinstance(b, bool) or not 0 <= b <= MAX_BIT_POSITION:
            raise ValueError(f"invalid bit position {b!r}")
        checked.append(int(b))
    return checked


class FilterStore:
    """
    Filters for one index, stored as rows of a boolean matrix.

    Row i holds the filter of ids[i]; column j is bit position j. The matrix
    widens as larger bit positions arrive.
    """

    def __init__(self):
        self.ids: List[str] = []
        self._id_to_idx: Dict[str, int] = {}
        self._rows = np.zeros((0, 0), dtype=bool)

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def width(self) -> int:
        return self._rows.shape[1]

    def _ensure_width(self, width: int) -> None:
        if width > self.width:
            grown = np.zeros((len(self.ids), width), dtype=bool)
            grown[:, :self.width] = self._rows
            self._rows = grown

    def upsert(self, record_id: str, bits: Iterable[int]) -> None:
        """Insert or replace the filter for a record."""
        bits = validate_bits(bits)
        if bits:
            self._ensure_width(max(bits) + 1)

        row = np.zeros(self.width, dtype=bool)
        row[bits] = True

        if record_id in self._id_to_idx:
            self._rows[self._id_to_idx[record_id]] = row
        else:
            self._id_to_idx[record_id] = len(self.ids)
            self.ids.append(record_id)
            self._rows = np.vstack([self._rows, row[np.newaxis, :]])

    def remove(self, record_id: str) -> bool:
        """Drop a record's filter. Returns False if it was not stored."""
        idx = self._id_to_idx.pop(record_id, None)
        if idx is None:
            return False

        self._rows = np.delete(self._rows, idx, axis=0)
        del self.ids[idx]
        self._id_to_idx = {id_: i for i, id_ in enumerate(self.ids)}
        return True

    def get_bits(self, record_id: str) -> List[int]:
        """Stored bit positions for a record."""
        row = self._rows[self._id_to_idx[record_id]]
        return np.flatnonzero(row).tolist()

    def match(self, bits: Iterable[int]) -> List[str]:
        """
        Ids whose filter contains every given bit.

        Args:
            bits: Query filter bit positions

        Returns:
            Matching ids, in insertion order
        """
        bits = validate_bits(bits)
        if not self.ids:
            return []
        if not bits:
            return list(self.ids)
        if max(bits) >= self.width:
            # no stored filter has that bit set
            return []

        mask = self._rows[:, bits].all(axis=1)
        return [self.ids[i] for i in np.flatnonzero(mask)]


@dataclass
class CollectionStore:
    """
    In-memory record store for one collection.

    Records stored without data are index-only: they can be matched but
    carry no payload.
    """
    name: str
    records: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)
    indexes: Dict[str, FilterStore] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    def put(
        self,
        record_id: str,
        data: Optional[Dict[str, Any]],
        entries: Dict[str, Iterable[int]],
    ) -> None:
        """
        Store a record and its index entries.

        A record re-put without an entry for some index is removed from it.

        Args:
            record_id: Record UUID
            data: Payload, or None for an index-only record
            entries: index_id -> bit positions
        """
        # Validate everything before mutating anything
        checked = {index_id: validate_bits(bits) for index_id, bits in entries.items()}

        for index_id, store in self.indexes.items():
            if index_id not in checked:
                store.remove(record_id)

        for index_id, bits in checked.items():
            self.indexes.setdefault(index_id, FilterStore()).upsert(record_id, bits)

        self.records[record_id] = data

    def get(self, record_id: str) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Fetch a record. Raises KeyError if unknown."""
        return record_id, self.records[record_id]

    def delete(self, record_id: str) -> None:
        """Delete a record and its index entries. Raises KeyError if unknown."""
        del self.records[record_id]
        for store in self.indexes.values():
            store.remove(record_id)

    def query(
        self,
        index_id: str,
        bits: Iterable[int],
        limit: Optional[int] = None,
    ) -> Tuple[List[Tuple[str, Optional[Dict[str, Any]]]], float]:
        """
        Filter-match query.

        Args:
            index_id: Index to query
            bits: Query filter bits
            limit: Maximum number of records

        Returns:
            Tuple of (list of (uuid, data), time_ms)
        """
        store = self.indexes.get(index_id)

        with Timer() as t:
            if store is None:
                validate_bits(bits)
                ids = []
            else:
                ids = store.match(bits)

        if limit is not None:
            ids = ids[:limit]
        return [(id_, self.records[id_]) for id_ in ids], t.elapsed_ms
