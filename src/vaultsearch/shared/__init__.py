"""Shared utilities and protocol definitions."""
from vaultsearch.shared.protocol import (
    BenchmarkResult,
    IndexKind,
    Record,
    IndexEntry,
    PutRequest,
    QueryRequest,
    QueryResult,
)
from vaultsearch.shared.schema import (
    CollectionSchema,
    IndexSettings,
    load_schema,
    parse_schema,
)
from vaultsearch.shared.config import ClientConfig, ServerConfig
from vaultsearch.shared.utils import (
    collect_string_fields,
    index_id_for,
    new_record_uuid,
    Timer,
)

__all__ = [
    "BenchmarkResult",
    "IndexKind",
    "Record",
    "IndexEntry",
    "PutRequest",
    "QueryRequest",
    "QueryResult",
    "CollectionSchema",
    "IndexSettings",
    "load_schema",
    "parse_schema",
    "ClientConfig",
    "ServerConfig",
    "collect_string_fields",
    "index_id_for",
    "new_record_uuid",
    "Timer",
]
