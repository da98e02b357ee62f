"""
vaultsearch: client for an encrypted, searchable record store.

Record fields are tokenized on the client and folded into keyed Bloom
filters. The store only ever receives bit positions:
1. Indexing: terms -> HMAC-SHA256 -> bit positions, one filter per record
2. Querying: query terms -> filter with the same key -> subset test

The server NEVER sees plaintext terms or the filter keys.
"""

__version__ = "0.1.0"
