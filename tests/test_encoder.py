from dataclasses import dataclass, field

import pytest

from torrentwire.decoder import decode
from torrentwire.encoder import encode


@dataclass
class RandomStruct:
    abc: int = field(metadata={"bencode": "abc"})
    skip_this_one: str = field(metadata={"bencode": "-"})
    CDE: str


@dataclass
class OmitString:
    A: str = field(default="", metadata={"omit_empty": True})


@dataclass
class OmitNone:
    A: object = field(default=None, metadata={"omit_empty": True})


@dataclass
class SkipField:
    A: str = field(default="", metadata={"bencode": "-"})


@pytest.mark.parametrize(
    "value, expected",
    [
        (10, b"i10e"),
        ("hello, world", b"12:hello, world"),
        (True, b"i1e"),
        (False, b"i0e"),
        (-8, b"i-8e"),
        (-16, b"i-16e"),
        (32, b"i32e"),
        (-64, b"i-64e"),
        (64, b"i64e"),
        (RandomStruct(123, "nono", "hello"), b"d3:CDE5:hello3:abci123ee"),
        ({"a": "b", "c": "d"}, b"d1:a1:b1:c1:de"),
        (bytes([1, 2, 3, 4]), b"4:\x01\x02\x03\x04"),
        (None, b""),
        (b"", b"0:"),
        ("", b"0:"),
        ([], b"le"),
        ({}, b"de"),
        (OmitNone(None), b"de"),
        (SkipField("x"), b"de"),
        (OmitString(""), b"de"),
        (OmitString("x"), b"d1:A1:xe"),
    ],
)
def test_encode_cases(value, expected):
    assert encode(value) == expected


def test_keys_are_sorted():
    assert encode({"zeta": 1, "alpha": 2, "mid": 3}) == b"d5:alphai2e3:midi3e4:zetai1ee"


def test_unicode_length_is_in_bytes():
    assert encode("unicode test проверка") == "29:unicode test проверка".encode()


def test_nested_structures():
    value = {"list": [1, b"x", {"k": []}], "n": -1}
    assert encode(value) == b"d4:listli1e1:xd1:kleee1:ni-1ee"


def test_none_values_are_dropped_from_dicts():
    assert encode({"a": None, "b": 1}) == b"d1:bi1ee"


def test_round_trip_through_decoder():
    value = {"a": [1, 2, b"three"], "b": {"c": b"d"}, "e": 0}
    assert decode(encode(value)) == value


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        encode(1.5)


def test_non_string_key_raises():
    with pytest.raises(TypeError):
        encode({1: 2})


def test_none_in_list_raises():
    with pytest.raises(TypeError):
        encode([None])


def test_duplicate_keys_raise():
    with pytest.raises(ValueError):
        encode({"a": 1, b"a": 2})