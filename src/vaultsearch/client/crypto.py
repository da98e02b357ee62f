"""
Client-side key management.

Every filter-match index gets its own 32-byte filter key, derived from the
client master key with HMAC-SHA256. The server never sees either key, so it
cannot map stored bit positions back to terms.
"""
import hashlib
import hmac
import secrets
from pathlib import Path
from typing import Dict, Union

from vaultsearch.client.bloom import is_hex_string
from vaultsearch.errors import InternalError


class KeyRing:
    """
    Client-side key material.

    Responsible for:
    - Generating a master key
    - Deriving per-index filter keys (hex-encoded, as KeyedBloomFilter expects)
    - Exporting/importing the master key
    """

    KEY_SIZE = 32  # bytes
    FILTER_KEY_CONTEXT = b"vaultsearch/filter-match/v1:"

    def __init__(self, master_key: str):
        """
        Initialize key ring.

        Args:
            master_key: Hex-encoded 32-byte master key
        """
        if not is_hex_string(master_key) or len(master_key) % 2:
            raise InternalError(
                f"expected master key to be a hex-encoded string (got {master_key!r})"
            )

        raw = bytes.fromhex(master_key)
        if len(raw) != self.KEY_SIZE:
            raise InternalError(
                f"expected master key to have length={self.KEY_SIZE}, got length={len(raw)}"
            )

        self._master_key = raw
        self._cache: Dict[str, str] = {}

    @classmethod
    def generate(cls) -> "KeyRing":
        """Create a key ring with a fresh random master key."""
        return cls(secrets.token_hex(cls.KEY_SIZE))

    @classmethod
    def from_key_file(cls, path: Union[str, Path]) -> "KeyRing":
        """Load a master key written by export_master_key."""
        return cls(Path(path).read_text().strip())

    @property
    def master_key_hex(self) -> str:
        return self._master_key.hex()

    def filter_key(self, index_id: str) -> str:
        """
        Derive the filter key for an index.

        Args:
            index_id: Stable identifier of the index

        Returns:
            64-character hex string
        """
        if index_id not in self._cache:
            digest = hmac.new(
                self._master_key,
                self.FILTER_KEY_CONTEXT + index_id.encode("utf-8"),
                hashlib.sha256,
            ).digest()
            self._cache[index_id] = digest.hex()
        return self._cache[index_id]

    def export_master_key(self, path: Union[str, Path]) -> None:
        """Write the master key to a file (hex)."""
        Path(path).write_text(self.master_key_hex + "\n")
