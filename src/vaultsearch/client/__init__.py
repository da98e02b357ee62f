"""Client-side components for filter-match search."""
from vaultsearch.client.bloom import KeyedBloomFilter, derive_bit_positions
from vaultsearch.client.crypto import KeyRing
from vaultsearch.client.search import Collection, SearchClient
from vaultsearch.client.text import TextProcessor
from vaultsearch.client.transport import HttpTransport

__all__ = [
    "KeyedBloomFilter",
    "derive_bit_positions",
    "KeyRing",
    "Collection",
    "SearchClient",
    "TextProcessor",
    "HttpTransport",
]
