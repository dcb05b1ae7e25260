"""Unit tests for selectors and identifiers."""

import pytest

from hypnos.domain.exceptions import InvalidSelector
from hypnos.domain.value_objects import (
    NULL_IDENTIFIER,
    WILDCARD,
    Selector,
    is_null_identifier,
    normalize_asset,
    normalize_identifier,
    selector_of,
)


class TestSelector:
    def test_from_hex_with_and_without_prefix(self) -> None:
        assert Selector.from_hex("0xa9059cbb") == Selector.from_hex("a9059cbb")
        assert Selector.from_hex("0xA9059CBB").hex() == "0xa9059cbb"

    def test_wrong_length_rejected(self) -> None:
        with pytest.raises(InvalidSelector):
            Selector.from_hex("0x1234")
        with pytest.raises(InvalidSelector):
            Selector(b"\x00" * 5)

    def test_non_hex_rejected(self) -> None:
        with pytest.raises(InvalidSelector):
            Selector.from_hex("0xnothex!")

    def test_wildcard_allows_anything(self) -> None:
        assert WILDCARD.is_wildcard
        assert WILDCARD.allows(b"")
        assert WILDCARD.allows(b"\x01\x02\x03\x04rest")

    def test_specific_selector_matches_prefix_only(self) -> None:
        selector = Selector(b"\x01\x02\x03\x04")
        assert selector.allows(b"\x01\x02\x03\x04")
        assert selector.allows(b"\x01\x02\x03\x04\xff\xff")
        assert not selector.allows(b"\x01\x02\x03")
        assert not selector.allows(b"\x01\x02\x03\x05")

    def test_for_signature_is_stable_and_distinct(self) -> None:
        a = Selector.for_signature("incrementCounter()")
        assert a == Selector.for_signature("incrementCounter()")
        assert a != Selector.for_signature("setMessage(string)")
        assert len(a.value) == 4

    def test_selector_of_pads_short_payload(self) -> None:
        assert selector_of(b"") == WILDCARD
        assert selector_of(b"\x01").value == b"\x01\x00\x00\x00"
        assert selector_of(b"\x01\x02\x03\x04\x05").value == b"\x01\x02\x03\x04"


class TestIdentifiers:
    def test_normalize(self) -> None:
        assert normalize_identifier("  0xABC ") == "0xabc"
        assert normalize_identifier(None) == ""

    def test_null_identifier(self) -> None:
        assert is_null_identifier(NULL_IDENTIFIER)
        assert is_null_identifier("0x0")
        assert is_null_identifier("")
        assert is_null_identifier(None)
        assert not is_null_identifier("0x01")
        assert not is_null_identifier("service:billing")

    def test_normalize_asset(self) -> None:
        assert normalize_asset(None) is None
        assert normalize_asset("native") is None
        assert normalize_asset("NATIVE") is None
        assert normalize_asset(NULL_IDENTIFIER) is None
        assert normalize_asset("0xAbC") == "0xabc"
