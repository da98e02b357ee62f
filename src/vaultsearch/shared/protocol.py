"""
Protocol definitions for client-server communication.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from vaultsearch.errors import IndexOnlyRecordError


class IndexKind(str, Enum):
    """Supported filter-match index types."""
    FILTER_MATCH = "filter-match"
    DYNAMIC_FILTER_MATCH = "dynamic-filter-match"
    FIELD_DYNAMIC_FILTER_MATCH = "field-dynamic-filter-match"


@dataclass
class BenchmarkResult:
    """Results from a filter benchmark run."""
    filter_size: int
    term_bits: int
    terms_per_record: int
    num_queries: int
    total_time_seconds: float
    avg_time_per_op_ms: float
    false_positive_rate: float
    expected_false_positive_rate: float
    notes: str = ""

    def __str__(self) -> str:
        return (
            f"Benchmark: m={self.filter_size} k={self.term_bits}\n"
            f"  Terms per record: {self.terms_per_record}\n"
            f"  Queries: {self.num_queries}\n"
            f"  Total time: {self.total_time_seconds:.3f}s\n"
            f"  Avg per op: {self.avg_time_per_op_ms:.3f}ms\n"
            f"  False positive rate: {self.false_positive_rate:.4f} "
            f"(expected {self.expected_false_positive_rate:.4f})\n"
            f"  Notes: {self.notes}"
        )


class Record:
    """
    The fundamental unit of storage.

    A record fetched without its payload (stored for indexing only) has no
    data; reading any field from it raises IndexOnlyRecordError.
    """

    def __init__(self, uuid: str, data: Optional[Dict[str, Any]]):
        self.uuid = uuid
        self._data = data

    @property
    def index_only(self) -> bool:
        return self._data is None

    def __getitem__(self, key: str) -> Any:
        if self._data is None:
            raise IndexOnlyRecordError("This record does not have any associated data")
        return self._data.get(key)

    def to_dict(self) -> Dict[str, Any]:
        return {"uuid": self.uuid, "data": self._data}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.uuid == other.uuid and self._data == other._data

    def __repr__(self) -> str:
        return f"Record(uuid={self.uuid!r}, index_only={self.index_only})"


@dataclass
class IndexEntry:
    """Serialized filter for one record in one index."""
    index_id: str
    uuid: str
    bits: List[int]

    def to_wire(self) -> dict:
        return {"indexId": self.index_id, "bits": self.bits}


@dataclass
class PutRequest:
    """Record plus its index entries, as sent to the store."""
    uuid: str
    data: Optional[Dict[str, Any]] = None
    entries: List[IndexEntry] = field(default_factory=list)

    def to_wire(self) -> dict:
        return {
            "uuid": self.uuid,
            "data": self.data,
            "indexes": [e.to_wire() for e in self.entries],
        }


@dataclass
class QueryRequest:
    """
    Filter-match query.

    bits are the query filter's set positions; the store returns records
    whose filter for index_id contains all of them.
    """
    index_id: str
    bits: List[int]
    limit: Optional[int] = None

    def to_wire(self) -> dict:
        body = {"indexId": self.index_id, "bits": self.bits}
        if self.limit is not None:
            body["limit"] = self.limit
        return body


@dataclass
class QueryResult:
    """Result of a filter-match query."""
    records: List[Record]
    server_time_ms: float = 0.0
