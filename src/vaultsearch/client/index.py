"""
Filter-match indexes.

Each index turns a record into a single KeyedBloomFilter (one per record per
index) and a query string into a filter built with the same key and
settings. The store keeps only the set bit positions and answers a query by
returning the records whose bits are a superset of the query's bits.

Supports three kinds:
1. filter-match - terms from the fields listed in the schema
2. dynamic-filter-match - terms from every string field
3. field-dynamic-filter-match - every string field, terms prefixed "field:"
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from vaultsearch.client.bloom import KeyedBloomFilter
from vaultsearch.client.crypto import KeyRing
from vaultsearch.client.text import TextProcessor
from vaultsearch.errors import InvalidSchemaError
from vaultsearch.shared.protocol import IndexEntry, IndexKind, QueryRequest
from vaultsearch.shared.schema import IndexSettings
from vaultsearch.shared.utils import collect_string_fields, get_path


class FilterMatchIndex(ABC):
    """Abstract base class for filter-match index types."""

    kind: IndexKind

    def __init__(
        self,
        name: str,
        index_id: str,
        settings: IndexSettings,
        filter_key: str,
    ):
        """
        Initialize index.

        Builds one throwaway filter so that bad filterSize/filterTermBits
        values fail here rather than on the first record.

        Args:
            name: Index name from the schema
            index_id: Stable id shared with the store
            settings: Index settings
            filter_key: Hex-encoded 32-byte key for this index
        """
        self.name = name
        self.index_id = index_id
        self.settings = settings
        self.text_processor = TextProcessor.from_settings(settings.text_settings())

        self._filter_key = filter_key
        self._filter_options = settings.filter_options()
        self.new_filter()

    def new_filter(self) -> KeyedBloomFilter:
        """Empty filter with this index's key and settings."""
        return KeyedBloomFilter(self._filter_key, self._filter_options)

    @abstractmethod
    def record_terms(self, data: Mapping[str, Any]) -> List[str]:
        """Terms to index for a record."""
        pass

    @abstractmethod
    def query_terms(self, value: str, field: Optional[str] = None) -> List[str]:
        """Terms for a match query."""
        pass

    def analyze(self, uuid: str, data: Mapping[str, Any]) -> Optional[IndexEntry]:
        """
        Build the index entry for a record.

        Args:
            uuid: Record UUID
            data: Record data

        Returns:
            IndexEntry with sorted bits, or None if nothing in the record
            is indexed by this index
        """
        terms = self.record_terms(data)
        if not terms:
            return None

        bloom = self.new_filter().add(terms)
        return IndexEntry(index_id=self.index_id, uuid=uuid, bits=sorted(bloom.to_list()))

    def query_filter(self, value: str, field: Optional[str] = None) -> KeyedBloomFilter:
        """Filter for the "match" operation."""
        return self.new_filter().add(self.query_terms(value, field))

    def query(
        self,
        value: str,
        field: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> QueryRequest:
        """Build the wire request for a match query."""
        bloom = self.query_filter(value, field)
        return QueryRequest(index_id=self.index_id, bits=sorted(bloom.to_list()), limit=limit)

    def matches(self, query_filter: KeyedBloomFilter, bits: Iterable[int]) -> bool:
        """Local inclusion test of a query filter against stored bits."""
        return query_filter.bits.issubset(bits)

    def _tokenize_all(self, values: Iterable[str]) -> List[str]:
        return [t for value in values for t in self.text_processor.perform(value)]

    def _reject_field(self, field: Optional[str]) -> None:
        if field is not None:
            raise InvalidSchemaError(
                f"{self.kind.value} index {self.name!r} does not take a field in match queries"
            )


class FieldsFilterMatchIndex(FilterMatchIndex):
    """
    filter-match: indexes the string values of the configured fields.

    All fields share one filter, so a query matches if its terms occur
    anywhere across them.
    """

    kind = IndexKind.FILTER_MATCH

    def record_terms(self, data: Mapping[str, Any]) -> List[str]:
        values = []
        for path in self.settings.field_paths:
            value = get_path(data, path)
            if isinstance(value, str):
                values.append(value)
        return self._tokenize_all(values)

    def query_terms(self, value: str, field: Optional[str] = None) -> List[str]:
        self._reject_field(field)
        return self.text_processor.perform(value)


class DynamicFilterMatchIndex(FilterMatchIndex):
    """dynamic-filter-match: indexes every string field, unprefixed."""

    kind = IndexKind.DYNAMIC_FILTER_MATCH

    def record_terms(self, data: Mapping[str, Any]) -> List[str]:
        return self._tokenize_all(value for _, value in collect_string_fields(data))

    def query_terms(self, value: str, field: Optional[str] = None) -> List[str]:
        self._reject_field(field)
        return self.text_processor.perform(value)


class FieldDynamicFilterMatchIndex(FilterMatchIndex):
    """
    field-dynamic-filter-match: indexes every string field with terms
    prefixed by the field path, so queries are scoped to one field.
    """

    kind = IndexKind.FIELD_DYNAMIC_FILTER_MATCH

    def record_terms(self, data: Mapping[str, Any]) -> List[str]:
        terms = [
            f"{path}:{token}"
            for path, value in collect_string_fields(data)
            for token in self.text_processor.perform(value)
        ]
        return list(dict.fromkeys(terms))

    def query_terms(self, value: str, field: Optional[str] = None) -> List[str]:
        if field is None:
            raise InvalidSchemaError(
                f"{self.kind.value} index {self.name!r} requires a field in match queries"
            )
        return [f"{field}:{token}" for token in self.text_processor.perform(value)]


INDEX_TYPES: Dict[IndexKind, Type[FilterMatchIndex]] = {
    cls.kind: cls
    for cls in (FieldsFilterMatchIndex, DynamicFilterMatchIndex, FieldDynamicFilterMatchIndex)
}


def build_index(
    name: str,
    index_id: str,
    settings: IndexSettings,
    keyring: KeyRing,
) -> FilterMatchIndex:
    """
    Create the index implementation for a schema entry.

    Args:
        name: Index name
        index_id: Stable index id
        settings: Index settings
        keyring: Source of the per-index filter key

    Returns:
        FilterMatchIndex instance
    """
    cls = INDEX_TYPES[settings.kind]
    return cls(name, index_id, settings, keyring.filter_key(index_id))
