"""Tests for the keyed Bloom filter."""
import itertools
import secrets

import pytest

from vaultsearch.client.bloom import KeyedBloomFilter, derive_bit_positions
from vaultsearch.errors import InternalError, InvalidSchemaError

VALID_M_VALUES = [32, 64, 128, 256, 512, 1024, 2048, 4096, 8192, 16384, 32768, 65536]
VALID_K_VALUES = list(range(3, 17))

# Fixed so that these tests are deterministic
KEY = "b6d6dba3be33ffaabb83af611ec043b9270dacdc7b3015ce2c36ba17cf2d3b2c"


class _Opaque:
    def __repr__(self):
        return "<opaque>"


class TestConstruction:
    """Test parameter and key validation."""

    def test_empty_bits(self):
        """A new filter has no bits set."""
        bloom = KeyedBloomFilter(KEY)
        assert bloom.bits == set()
        assert len(bloom) == 0

    def test_default_m(self):
        assert KeyedBloomFilter(KEY).m == 256

    def test_default_k(self):
        assert KeyedBloomFilter(KEY).k == 3

    def test_options_none(self):
        """None options behave like an empty mapping."""
        bloom = KeyedBloomFilter(KEY, None)
        assert (bloom.m, bloom.k) == (256, 3)

    @pytest.mark.parametrize("m", VALID_M_VALUES)
    def test_valid_m(self, m):
        assert KeyedBloomFilter(KEY, {"filterSize": m}).m == m

    @pytest.mark.parametrize(
        "m",
        [0, 2, 16, 31, 513, 131072, "256", "ohai", None, {"foo": "bar"}, _Opaque(), 256.0, True, -256],
    )
    def test_invalid_m(self, m):
        """Invalid filterSize raises a schema error echoing the value."""
        with pytest.raises(InvalidSchemaError) as exc_info:
            KeyedBloomFilter(KEY, {"filterSize": m})
        assert str(exc_info.value) == (
            f"filterSize must be a power of 2 between 32 and 65536 (got {m!r})"
        )

    @pytest.mark.parametrize("k", VALID_K_VALUES)
    def test_valid_k(self, k):
        assert KeyedBloomFilter(KEY, {"filterTermBits": k}).k == k

    def test_k_too_small(self):
        with pytest.raises(InvalidSchemaError) as exc_info:
            KeyedBloomFilter(KEY, {"filterTermBits": 2})
        assert str(exc_info.value) == "filterTermBits must be an integer between 3 and 16 (got 2)"

    def test_k_too_large(self):
        with pytest.raises(InvalidSchemaError) as exc_info:
            KeyedBloomFilter(KEY, {"filterTermBits": 17})
        assert str(exc_info.value) == "filterTermBits must be an integer between 3 and 16 (got 17)"

    @pytest.mark.parametrize("k", [3.5, 4.0, "4", "ohai", None, {"foo": "bar"}, _Opaque(), False])
    def test_invalid_k(self, k):
        with pytest.raises(InvalidSchemaError) as exc_info:
            KeyedBloomFilter(KEY, {"filterTermBits": k})
        assert str(exc_info.value) == (
            f"filterTermBits must be an integer between 3 and 16 (got {k!r})"
        )

    def test_key_too_short(self):
        with pytest.raises(InternalError) as exc_info:
            KeyedBloomFilter(secrets.token_hex(16))
        assert str(exc_info.value) == "expected bloom filter key to have length=32, got length=16"

    def test_key_too_long(self):
        with pytest.raises(InternalError, match="got length=33"):
            KeyedBloomFilter(secrets.token_hex(33))

    def test_key_empty(self):
        """Empty string passes the hex check but fails the length check."""
        with pytest.raises(InternalError) as exc_info:
            KeyedBloomFilter("")
        assert str(exc_info.value) == "expected bloom filter key to have length=32, got length=0"

    def test_key_not_hex(self):
        with pytest.raises(InternalError) as exc_info:
            KeyedBloomFilter("ZZZ")
        assert str(exc_info.value) == "expected bloom filter key to be a hex-encoded string (got 'ZZZ')"

    def test_key_odd_length_is_zero_padded(self):
        """A trailing odd digit becomes the high nibble of the last byte."""
        padded = KEY[:-1] + "0"
        assert KeyedBloomFilter(KEY[:-1]).add("yes").bits == KeyedBloomFilter(padded).add("yes").bits

    def test_key_odd_length_too_short(self):
        with pytest.raises(InternalError) as exc_info:
            KeyedBloomFilter("abc")
        assert str(exc_info.value) == "expected bloom filter key to have length=32, got length=2"

    @pytest.mark.parametrize("key", [KEY[:32] + " " + KEY[32:], KEY + "\n", "0x" + KEY[2:]])
    def test_key_with_non_hex_characters(self, key):
        with pytest.raises(InternalError, match="hex-encoded string"):
            KeyedBloomFilter(key)

    def test_key_uppercase_hex(self):
        assert KeyedBloomFilter(KEY.upper()).add("yes").bits == KeyedBloomFilter(KEY).add("yes").bits

    @pytest.mark.parametrize("key", [3.5, 4, None, {"foo": "bar"}, _Opaque(), KEY.encode()])
    def test_key_wrong_type(self, key):
        with pytest.raises(InternalError) as exc_info:
            KeyedBloomFilter(key)
        assert str(exc_info.value) == (
            f"expected bloom filter key to be a hex-encoded string (got {key!r})"
        )

    def test_key_checked_before_options(self):
        """A bad key is reported even when the options are also bad."""
        with pytest.raises(InternalError):
            KeyedBloomFilter("ZZZ", {"filterSize": 3})

    def test_m_checked_before_k(self):
        with pytest.raises(InvalidSchemaError, match="filterSize"):
            KeyedBloomFilter(KEY, {"filterSize": 3, "filterTermBits": 99})


class TestAdd:
    """Test adding terms."""

    def test_single_term_or_list(self):
        """add(term) and add([term]) are equivalent."""
        bloom_a = KeyedBloomFilter(KEY).add("abc")
        bloom_b = KeyedBloomFilter(KEY).add(["abc"])

        assert bloom_a.bits
        assert bloom_a.bits == bloom_b.bits

    def test_deterministic_across_instances(self):
        assert KeyedBloomFilter(KEY).add("abc").bits == KeyedBloomFilter(KEY).add("abc").bits

    def test_k_entries_without_collisions(self):
        """'yes' has no slice collisions for the test key at k=3."""
        bloom = KeyedBloomFilter(KEY)
        bloom.add("yes")
        assert len(bloom.bits) == bloom.k

    def test_idempotent(self):
        once = KeyedBloomFilter(KEY).add("yes")
        twice = KeyedBloomFilter(KEY).add("yes").add("yes")
        assert once.bits == twice.bits

    def test_returns_self(self):
        bloom = KeyedBloomFilter(KEY)
        assert bloom.add("yes") is bloom

    def test_none_adds_nothing(self):
        assert KeyedBloomFilter(KEY).add(None).bits == set()

    def test_generator_of_terms(self):
        from_gen = KeyedBloomFilter(KEY).add(t for t in ["a", "b"])
        from_list = KeyedBloomFilter(KEY).add(["a", "b"])
        assert from_gen.bits == from_list.bits

    def test_bits_only_grow(self):
        bloom = KeyedBloomFilter(KEY)
        previous = bloom.bits
        for term in ["a", "b", "c", "a"]:
            bloom.add(term)
            assert previous <= bloom.bits
            previous = bloom.bits

    def test_different_keys_differ(self):
        other_key = "00" * 32
        assert KeyedBloomFilter(KEY).add("yes").bits != KeyedBloomFilter(other_key).add("yes").bits

    def test_bits_snapshot_is_immutable(self):
        bloom = KeyedBloomFilter(KEY).add("yes")
        snapshot = bloom.bits
        bloom.add("no")
        assert isinstance(snapshot, frozenset)
        assert snapshot <= bloom.bits

    @pytest.mark.parametrize("k", VALID_K_VALUES)
    def test_at_most_k_entries(self, k):
        bloom = KeyedBloomFilter(KEY, {"filterTermBits": k})
        bloom.add(secrets.token_urlsafe(3))

        assert bloom.k == k
        assert 0 < len(bloom.bits) <= k

    @pytest.mark.parametrize("m", VALID_M_VALUES)
    def test_positions_below_m(self, m):
        bloom = KeyedBloomFilter(KEY, {"filterSize": m, "filterTermBits": 16})
        bloom.add([secrets.token_urlsafe(3) for _ in range(20)])

        assert bloom.m == m
        assert bloom.bits
        assert all(0 <= b < m for b in bloom.bits), f"bits out of range: {sorted(bloom.bits)}"


class TestDeriveBitPositions:
    """Test the free bit-derivation function."""

    def test_matches_filter(self):
        key = bytes.fromhex(KEY)
        for m, k in [(256, 3), (32, 16), (65536, 7)]:
            bloom = KeyedBloomFilter(KEY, {"filterSize": m, "filterTermBits": k}).add("term")
            assert derive_bit_positions(key, "term", m, k) == bloom.bits

    def test_str_and_bytes_agree(self):
        key = bytes.fromhex(KEY)
        assert derive_bit_positions(key, "héllo", 256, 3) == derive_bit_positions(
            key, "héllo".encode("utf-8"), 256, 3
        )

    def test_slices_are_little_endian(self):
        """Position i is digest[2i] + 256 * digest[2i+1], mod m."""
        import hashlib
        import hmac

        key = bytes.fromhex(KEY)
        digest = hmac.new(key, b"yes", hashlib.sha256).digest()
        expected = {(digest[2 * i] | digest[2 * i + 1] << 8) % 65536 for i in range(16)}

        assert derive_bit_positions(key, "yes", 65536, 16) == expected

    def test_prefix_property(self):
        """Raising k only adds positions: the first slices are shared."""
        key = bytes.fromhex(KEY)
        assert derive_bit_positions(key, "x", 1024, 3) <= derive_bit_positions(key, "x", 1024, 10)


class TestSubset:
    """Test the subset match."""

    def test_same_terms(self):
        bloom_a = KeyedBloomFilter(KEY).add("yes")
        bloom_b = KeyedBloomFilter(KEY).add("yes")
        assert bloom_a.issubset(bloom_b)
        assert bloom_a <= bloom_b

    def test_different_terms(self):
        bloom_a = KeyedBloomFilter(KEY).add("yes")
        bloom_b = KeyedBloomFilter(KEY).add("ner")
        assert not bloom_a.issubset(bloom_b)

    def test_empty_is_subset(self):
        assert KeyedBloomFilter(KEY).issubset(KeyedBloomFilter(KEY).add("yes"))
        assert KeyedBloomFilter(KEY).issubset(KeyedBloomFilter(KEY))

    @pytest.mark.parametrize("m,k", list(itertools.product(VALID_M_VALUES, VALID_K_VALUES)))
    def test_subset_laws(self, m, k):
        options = {"filterSize": m, "filterTermBits": k}
        bloom_a = KeyedBloomFilter(KEY, options).add(["a", "b", "c"])
        # subset of bloom_a
        bloom_b = KeyedBloomFilter(KEY, options).add(["a", "b"])
        # no overlap with bloom_a
        bloom_c = KeyedBloomFilter(KEY, options).add(["d", "e"])
        # partial overlap with bloom_a
        bloom_d = KeyedBloomFilter(KEY, options).add(["c", "d"])

        assert bloom_b.issubset(bloom_a)
        assert not bloom_c.issubset(bloom_a)
        assert not bloom_d.issubset(bloom_a)


class TestToList:
    """Test serialization."""

    def test_returns_list(self):
        bloom = KeyedBloomFilter(KEY).add("a")
        assert isinstance(bloom.to_list(), list)
        assert set(bloom.to_list()) == bloom.bits

    def test_empty(self):
        assert KeyedBloomFilter(KEY).to_list() == []

    def test_no_duplicates(self):
        bloom = KeyedBloomFilter(KEY, {"filterSize": 32, "filterTermBits": 16}).add(["a", "b", "c"])
        values = bloom.to_list()
        assert len(values) == len(set(values))
