"""Server-side components for filter-match search."""
from vaultsearch.server.store import CollectionStore, FilterStore
from vaultsearch.server.api import app, create_app, run_server

__all__ = [
    "CollectionStore",
    "FilterStore",
    "app",
    "create_app",
    "run_server",
]
