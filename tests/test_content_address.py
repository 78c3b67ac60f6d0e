"""
Content Address Tests
=====================

INVARIANTS TESTED:
1. Same bytes -> same address, always
2. Canonical hex form round-trips losslessly
3. Malformed hex is rejected at construction
"""

import hashlib

import pytest
from hypothesis import given, strategies as st

from mdhost.contracts.base import ContentAddress


class TestContentAddressDerivation:

    def test_known_vectors(self):
        assert ContentAddress.compute(b"").hex == "da39a3ee5e6b4b0d3255bfef95601890afd80709"
        assert ContentAddress.compute(b"abc").hex == "a9993e364706816aba3e25717850c26c9cd0d89d"

    @given(st.binary())
    def test_deterministic(self, data):
        """Same bytes always produce the same address."""
        assert ContentAddress.compute(data) == ContentAddress.compute(data)
        assert ContentAddress.compute(data).hex == hashlib.sha1(data).hexdigest()

    def test_different_content_different_address(self):
        assert ContentAddress.compute(b"# Hi") != ContentAddress.compute(b"# Hi\n")

    def test_digest_is_160_bits(self):
        assert len(ContentAddress.compute(b"payload").digest) == 20


class TestContentAddressEncoding:

    @given(st.binary())
    def test_string_round_trip(self, data):
        address = ContentAddress.compute(data)
        assert ContentAddress.from_hex(str(address)) == address

    def test_from_hex_normalises_case(self):
        address = ContentAddress.compute(b"abc")
        parsed = ContentAddress.from_hex(address.hex.upper())
        assert parsed == address
        assert parsed.hex == address.hex

    def test_usable_as_dict_key(self):
        a = ContentAddress.compute(b"x")
        b = ContentAddress.from_hex(a.hex)
        assert {a: 1}[b] == 1

    @pytest.mark.parametrize("bad", [
        "",
        "abc",
        "z" * 40,
        "a9993e364706816aba3e25717850c26c9cd0d89",    # 39 chars
        "a9993e364706816aba3e25717850c26c9cd0d89d0",  # 41 chars
    ])
    def test_malformed_hex_rejected(self, bad):
        with pytest.raises(ValueError):
            ContentAddress.from_hex(bad)
