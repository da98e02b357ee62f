"""
Client-side search orchestration.

Coordinates the full flow:
1. Tokenize record fields and build one filter per record per index
2. Send records + filter bits to the store
3. For queries, build a filter from the query terms with the same key
4. The store returns records whose filters contain every query bit
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from pathlib import Path

from vaultsearch.client.crypto import KeyRing
from vaultsearch.client.index import FilterMatchIndex, build_index
from vaultsearch.client.transport import HttpTransport
from vaultsearch.errors import InvalidSchemaError
from vaultsearch.shared.config import ClientConfig
from vaultsearch.shared.protocol import PutRequest, Record
from vaultsearch.shared.schema import CollectionSchema, load_schema, parse_schema
from vaultsearch.shared.utils import Timer, index_id_for, new_record_uuid, summarize_timing


class Collection:
    """
    A collection with its filter-match indexes.

    Handles the record and query lifecycle while keeping plaintext terms
    on the client.
    """

    def __init__(
        self,
        schema: CollectionSchema,
        keyring: KeyRing,
        transport: HttpTransport,
    ):
        """
        Initialize collection.

        Every index is built up front, so schema errors surface here.

        Args:
            schema: Validated collection schema
            keyring: Source of per-index filter keys
            transport: Connection to the store
        """
        self.schema = schema
        self.name = schema.name
        self.transport = transport
        self.indexes: Dict[str, FilterMatchIndex] = {
            index_name: build_index(
                index_name,
                index_id_for(schema.name, index_name),
                settings,
                keyring,
            )
            for index_name, settings in schema.indexes.items()
        }

    def index(self, name: str) -> FilterMatchIndex:
        if name not in self.indexes:
            raise InvalidSchemaError(f"collection {self.name!r} has no index named {name!r}")
        return self.indexes[name]

    def analyze(self, uuid: str, data: Mapping[str, Any], index_only: bool = False) -> PutRequest:
        """
        Build the store request for a record without sending it.

        Args:
            uuid: Record UUID
            data: Record data
            index_only: Store the filters but not the data

        Returns:
            PutRequest with one entry per index that matched the record
        """
        entries = []
        for index in self.indexes.values():
            entry = index.analyze(uuid, data)
            if entry is not None:
                entries.append(entry)

        return PutRequest(
            uuid=uuid,
            data=None if index_only else dict(data),
            entries=entries,
        )

    def put(
        self,
        data: Mapping[str, Any],
        uuid: Optional[str] = None,
        index_only: bool = False,
        verbose: bool = False,
    ) -> str:
        """
        Index and store a record.

        Args:
            data: Record data
            uuid: Record UUID (generated if omitted)
            index_only: Store the filters but not the data
            verbose: Print timing information

        Returns:
            The record UUID
        """
        uuid = uuid or new_record_uuid()
        timing = {}

        with Timer() as t:
            request = self.analyze(uuid, data, index_only=index_only)
        timing["analyze_ms"] = t.elapsed_ms

        with Timer() as t:
            self.transport.put_record(self.name, request)
        timing["put_ms"] = t.elapsed_ms

        if verbose:
            print(f"put {uuid}: {len(request.entries)} index entries, {summarize_timing(timing)}")

        return uuid

    def get(self, uuid: str) -> Record:
        """Fetch a record. Raises RecordNotFoundError if unknown."""
        return self.transport.get_record(self.name, uuid)

    def delete(self, uuid: str) -> None:
        """Delete a record. Raises RecordNotFoundError if unknown."""
        self.transport.delete_record(self.name, uuid)

    def query(
        self,
        index_name: str,
        value: str,
        field: Optional[str] = None,
        limit: Optional[int] = None,
        verbose: bool = False,
    ) -> Tuple[List[Record], dict]:
        """
        Run a "match" query against one index.

        Results are candidates: a Bloom filter can report false positives
        but never misses a record that contains the query terms.

        Args:
            index_name: Index to query
            value: Query text
            field: Field to match (field-dynamic-filter-match only)
            limit: Maximum number of records (None returns every match)
            verbose: Print timing information

        Returns:
            Tuple of (records, timing info)
        """
        timing = {}
        index = self.index(index_name)

        with Timer() as t:
            request = index.query(value, field=field, limit=limit)
        timing["build_filter_ms"] = t.elapsed_ms

        with Timer() as t:
            result = self.transport.query(self.name, request)
        timing["request_ms"] = t.elapsed_ms
        timing["server_ms"] = result.server_time_ms

        timing["total_ms"] = timing["build_filter_ms"] + timing["request_ms"]

        if verbose:
            print(
                f"query {index_name}={value!r}: {len(result.records)} candidates, "
                f"{len(request.bits)} bits, {summarize_timing(timing)}"
            )

        return result.records, timing

    def match_local(
        self,
        index_name: str,
        value: str,
        candidates: Mapping[str, Iterable[int]],
        field: Optional[str] = None,
    ) -> List[str]:
        """
        Filter-match against bits already held by the client.

        Args:
            index_name: Index the bits belong to
            value: Query text
            candidates: uuid -> stored bit positions
            field: Field to match (field-dynamic-filter-match only)

        Returns:
            UUIDs whose bits contain the query filter
        """
        index = self.index(index_name)
        query_filter = index.query_filter(value, field=field)
        return [uuid for uuid, bits in candidates.items() if index.matches(query_filter, bits)]


class SearchClient:
    """
    Entry point: holds the key ring and transport, hands out collections.
    """

    def __init__(self, keyring: KeyRing, transport: HttpTransport):
        self.keyring = keyring
        self.transport = transport

    @classmethod
    def from_config(cls, config: Optional[ClientConfig] = None) -> "SearchClient":
        """Build from ClientConfig (env-var defaults)."""
        config = config or ClientConfig()
        return cls(
            KeyRing(config.client_key),
            HttpTransport(base_url=config.base_url, timeout=config.timeout),
        )

    def collection(
        self,
        schema: Union[CollectionSchema, Dict[str, Any], str, Path],
    ) -> Collection:
        """
        Open a collection.

        Args:
            schema: A CollectionSchema, a raw schema dict, or a path to a schema file
        """
        if isinstance(schema, (str, Path)):
            schema = load_schema(schema)
        elif isinstance(schema, dict):
            schema = parse_schema(schema)
        return Collection(schema, self.keyring, self.transport)
