"""Tests for client key management."""
import pytest

from vaultsearch.client.bloom import KeyedBloomFilter
from vaultsearch.client.crypto import KeyRing
from vaultsearch.errors import InternalError

MASTER_KEY = "11" * 32


class TestKeyRing:
    """Test per-index key derivation."""

    def test_filter_key_is_valid_bloom_key(self):
        """Derived keys are accepted by the bloom filter."""
        key = KeyRing(MASTER_KEY).filter_key("index-1")
        assert len(key) == 64
        KeyedBloomFilter(key)

    def test_stable(self):
        assert KeyRing(MASTER_KEY).filter_key("a") == KeyRing(MASTER_KEY).filter_key("a")

    def test_distinct_per_index(self):
        keyring = KeyRing(MASTER_KEY)
        assert keyring.filter_key("a") != keyring.filter_key("b")

    def test_distinct_per_master_key(self):
        assert KeyRing(MASTER_KEY).filter_key("a") != KeyRing("22" * 32).filter_key("a")

    def test_generate(self):
        assert KeyRing.generate().master_key_hex != KeyRing.generate().master_key_hex

    @pytest.mark.parametrize("bad", ["", "ZZ", "11" * 16, None, 42])
    def test_invalid_master_key(self, bad):
        with pytest.raises(InternalError, match="master key"):
            KeyRing(bad)

    @pytest.mark.parametrize(
        "bad",
        [
            "11 " * 32,
            " " + "11" * 32,
            "11" * 16 + "\n" + "11" * 16,
            "11" * 32 + "1",
        ],
    )
    def test_master_key_must_be_plain_hex(self, bad):
        """Whitespace and odd digits are rejected, not skipped."""
        with pytest.raises(InternalError) as exc_info:
            KeyRing(bad)
        assert str(exc_info.value) == f"expected master key to be a hex-encoded string (got {bad!r})"

    def test_export_and_load(self, tmp_path):
        keyring = KeyRing.generate()
        path = tmp_path / "master.key"
        keyring.export_master_key(path)

        loaded = KeyRing.from_key_file(path)
        assert loaded.master_key_hex == keyring.master_key_hex
        assert loaded.filter_key("x") == keyring.filter_key("x")
