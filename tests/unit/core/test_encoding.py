"""Unit tests for PlantUML text encoding."""

from __future__ import annotations

import zlib

import pytest

from plantmark.encoding import ALPHABET, deflate, encode, encode64


@pytest.mark.unit
@pytest.mark.core
class TestEncode:
    """Golden values shared with PlantUML servers."""

    def test_reference_string(self) -> None:
        assert encode("Bob -> Alice : hello") == "SyfFKj2rKt3CoKnELR1Io4ZDoSa70000"

    def test_short_payload(self) -> None:
        assert encode("A -> B") == "SrJGjLDm0W00"

    def test_empty_string(self) -> None:
        assert encode("") == "0m00"

    def test_deterministic(self) -> None:
        source = "class A {\n    String a;\n}\nA <|-- B"
        assert encode(source) == encode(source)

    def test_url_safe(self) -> None:
        token = encode("Ünïcödé -> ☃ : \"quotes\" & <tags>\n" * 20)
        assert set(token) <= set(ALPHABET)

    def test_length_is_multiple_of_four(self) -> None:
        for source in ["a", "ab", "abc", "Bob -> Alice", "x" * 100]:
            assert len(encode(source)) % 4 == 0


@pytest.mark.unit
@pytest.mark.core
class TestDeflate:
    """Raw DEFLATE stream without zlib framing."""

    def test_no_zlib_header(self) -> None:
        data = b"Bob -> Alice : hello"
        assert deflate(data) == zlib.compress(data, 9)[2:-4]

    def test_inflates_back(self) -> None:
        data = "A -> B : ünïcode".encode()
        assert zlib.decompress(deflate(data), -zlib.MAX_WBITS) == data


@pytest.mark.unit
@pytest.mark.core
class TestEncode64:
    """The 6-bit alphabet transform."""

    def test_alphabet_layout(self) -> None:
        assert len(ALPHABET) == 64
        assert ALPHABET[0] == "0"
        assert ALPHABET[9] == "9"
        assert ALPHABET[10] == "A"
        assert ALPHABET[35] == "Z"
        assert ALPHABET[36] == "a"
        assert ALPHABET[61] == "z"
        assert ALPHABET[62] == "-"
        assert ALPHABET[63] == "_"

    def test_full_group(self) -> None:
        # 0xFFFFFF -> four groups of 63
        assert encode64(b"\xff\xff\xff") == "____"

    def test_zero_bytes(self) -> None:
        assert encode64(b"\x00\x00\x00") == "0000"

    def test_one_trailing_byte_is_zero_padded(self) -> None:
        # 0xFF -> 111111 11|0000 0000|00 000000
        assert encode64(b"\xff") == "_m00"

    def test_two_trailing_bytes_are_zero_padded(self) -> None:
        # 0x00 0x01 -> 000000 00|0000 0001|00 000000
        assert encode64(b"\x00\x01") == "0040"

    def test_empty(self) -> None:
        assert encode64(b"") == ""
