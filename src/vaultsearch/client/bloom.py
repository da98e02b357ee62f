"""
Keyed Bloom filter used by the filter-match index types.

Terms are mapped to bit positions with HMAC-SHA256: the digest is cut into
2-byte little-endian slices and the first k slices, reduced modulo m, are the
positions switched on for that term. Only the set bits are tracked, so a
filter is a sparse set of ints in [0, m-1].

Two filters built with the same (key, m, k) can be compared: if every bit of
a query filter is set in a record filter, the record is a candidate match.
False positives are possible, false negatives are not.
"""
import hashlib
import hmac
import re
import struct
from typing import FrozenSet, Iterable, List, Mapping, Optional, Set, Union

from vaultsearch.errors import InternalError, InvalidSchemaError

Term = Union[str, bytes]

DIGEST_SIZE = hashlib.sha256().digest_size  # 32 bytes
SLICE_SIZE = 2
KEY_SIZE = 32

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def derive_bit_positions(key: bytes, term: Term, m: int, k: int) -> Set[int]:
    """
    Compute the bit positions a single term switches on.

    Args:
        key: Raw 32-byte HMAC key
        term: Term to hash (str is UTF-8 encoded)
        m: Filter size in bits
        k: Number of digest slices to use

    Returns:
        Set of between 1 and k positions, each in [0, m-1]
    """
    if isinstance(term, str):
        term = term.encode("utf-8")

    digest = hmac.new(key, term, hashlib.sha256).digest()

    positions = set()
    for slice_index in range(k):
        offset = SLICE_SIZE * slice_index
        (value,) = struct.unpack_from("<H", digest, offset)
        positions.add(value % m)
    return positions


class KeyedBloomFilter:
    """
    Bloom filter over a bounded bit space, keyed with a secret.

    Settings come from the index schema:
    - "filterSize" (m): power of 2 between 32 and 65536, default 256
    - "filterTermBits" (k): integer between 3 and 16, default 3

    k is capped at 16 because that is how many 2-byte slices a single
    SHA-256 digest holds.
    """

    K_MIN = 3
    K_MAX = DIGEST_SIZE // SLICE_SIZE
    K_DEFAULT = 3
    M_MIN = 32
    M_MAX = 65536
    M_DEFAULT = 256

    def __init__(self, key: str, options: Optional[Mapping] = None):
        """
        Create an empty filter.

        Args:
            key: Hex-encoded 32-byte key; an odd trailing digit is zero-padded
            options: Index settings; "filterSize" and "filterTermBits" are read

        Raises:
            InternalError: key is not hex or does not decode to 32 bytes
            InvalidSchemaError: filterSize or filterTermBits is invalid
        """
        options = options or {}

        self._key = _decode_key(key)

        m = options.get("filterSize", self.M_DEFAULT)
        if not _valid_m(m):
            raise InvalidSchemaError(
                f"filterSize must be a power of 2 between {self.M_MIN} and {self.M_MAX} (got {m!r})"
            )

        k = options.get("filterTermBits", self.K_DEFAULT)
        if not _valid_k(k):
            raise InvalidSchemaError(
                f"filterTermBits must be an integer between {self.K_MIN} and {self.K_MAX} (got {k!r})"
            )

        self._m = m
        self._k = k
        self._bits: Set[int] = set()

    @property
    def m(self) -> int:
        """Filter size in bits. Bit positions are in [0, m-1]."""
        return self._m

    @property
    def k(self) -> int:
        """Number of digest slices (hash functions) applied per term."""
        return self._k

    @property
    def bits(self) -> FrozenSet[int]:
        """Snapshot of the set bit positions."""
        return frozenset(self._bits)

    def add(self, terms: Union[Term, Iterable[Term], None]) -> "KeyedBloomFilter":
        """
        Add one term or a sequence of terms.

        Args:
            terms: A single term, an iterable of terms, or None

        Returns:
            self, for chaining
        """
        if terms is None:
            return self
        if isinstance(terms, (str, bytes)):
            terms = [terms]

        for term in terms:
            self._bits |= derive_bit_positions(self._key, term, self._m, self._k)
        return self

    def issubset(self, other: "KeyedBloomFilter") -> bool:
        """Return True if every bit set here is also set in other."""
        return self._bits <= other._bits

    def __le__(self, other: "KeyedBloomFilter") -> bool:
        return self.issubset(other)

    def to_list(self) -> List[int]:
        """Return the set bits as a list, in no particular order."""
        return list(self._bits)

    def __len__(self) -> int:
        return len(self._bits)

    def __repr__(self) -> str:
        return f"KeyedBloomFilter(m={self._m}, k={self._k}, bits={len(self._bits)})"


def _decode_key(key) -> bytes:
    if not is_hex_string(key):
        raise InternalError(
            f"expected bloom filter key to be a hex-encoded string (got {key!r})"
        )

    # a trailing odd digit is the high nibble of a final byte
    if len(key) % 2:
        key += "0"

    raw = bytes.fromhex(key)
    if len(raw) != KEY_SIZE:
        raise InternalError(
            f"expected bloom filter key to have length={KEY_SIZE}, got length={len(raw)}"
        )
    return raw


def is_hex_string(value) -> bool:
    """True for a str made only of hex digits (no whitespace, no 0x prefix)."""
    return type(value) is str and _HEX_RE.fullmatch(value) is not None


def _is_int(value) -> bool:
    # bool is an int subclass but never a valid setting
    return isinstance(value, int) and not isinstance(value, bool)


def _valid_m(m) -> bool:
    return (
        _is_int(m)
        and KeyedBloomFilter.M_MIN <= m <= KeyedBloomFilter.M_MAX
        and m & (m - 1) == 0
    )


def _valid_k(k) -> bool:
    return _is_int(k) and KeyedBloomFilter.K_MIN <= k <= KeyedBloomFilter.K_MAX
