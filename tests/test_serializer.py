import math

import pytest

from sessionkit.errors import SessionConfigError, SessionSerializationError
from sessionkit.modules.serializer import (
    PhpSerializeSessionSerializer,
    PhpSessionSerializer,
    dumps,
    get_serializer,
    loads,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, b"N;"),
        (True, b"b:1;"),
        (False, b"b:0;"),
        (42, b"i:42;"),
        (-7, b"i:-7;"),
        (0.5, b"d:0.5;"),
        (2.0, b"d:2;"),
        ("bar", b's:3:"bar";'),
        ("hé", b's:3:"h\xc3\xa9";'),
        (b"\x00\xff", b's:2:"\x00\xff";'),
        (["foo"], b'a:1:{i:0;s:3:"foo";}'),
        ({"a": 1, 5: "x"}, b'a:2:{s:1:"a";i:1;i:5;s:1:"x";}'),
    ],
)
def test_dumps(value, expected):
    """Test the tagged encoding of scalars and arrays."""
    assert dumps(value) == expected


def test_dumps_special_floats():
    """Test infinities and NaN."""
    assert dumps(math.inf) == b"d:INF;"
    assert dumps(-math.inf) == b"d:-INF;"
    assert dumps(math.nan) == b"d:NAN;"
    assert math.isnan(loads(b"d:NAN;"))
    assert loads(b"d:-INF;") == -math.inf


def test_dumps_unsupported_type():
    """Test values without a wire form are rejected."""
    with pytest.raises(SessionSerializationError):
        dumps(object())


def test_loads_nested_structures():
    """Test nested arrays decode to lists and dicts."""
    data = b'a:2:{s:4:"list";a:2:{i:0;i:1;i:1;d:1.5;}s:3:"map";a:1:{s:1:"k";b:1;}}'
    assert loads(data) == {"list": [1, 1.5], "map": {"k": True}}


def test_loads_sparse_array_is_dict():
    """Test integer keys that are not 0..n-1 stay a dict."""
    assert loads(b'a:2:{i:1;s:1:"a";i:2;s:1:"b";}') == {1: "a", 2: "b"}


def test_loads_empty_array_is_dict():
    """Test an empty array decodes to an empty mapping."""
    assert loads(b"a:0:{}") == {}
    assert loads(dumps([])) == {}


def test_loads_sequential_int_keys_are_list():
    """Test a mapping keyed 0..n-1 comes back as a list."""
    assert loads(dumps({0: "a", 1: "b"})) == ["a", "b"]


def test_loads_object():
    """Test objects decode into their properties."""
    data = b'O:3:"Foo":3:{s:3:"pub";i:1;s:6:"\x00*\x00pro";i:2;s:8:"\x00Foo\x00pri";i:3;}'
    assert loads(data) == {"pub": 1, "pro": 2, "pri": 3}


def test_loads_string_with_multibyte_length():
    """Test string length counts bytes."""
    assert loads('s:3:"hé";') == "hé"


def test_loads_invalid_utf8_stays_bytes():
    """Test undecodable strings are returned as bytes."""
    assert loads(b's:1:"\xff";') == b"\xff"


@pytest.mark.parametrize(
    "data",
    [b"", b"x:1;", b"i:abc;", b's:10:"short";', b"a:1:{i:0;}", b"i:1;extra", b"b:2;", b"a:1:{d:1.0;i:1;}"],
)
def test_loads_malformed(data):
    """Test malformed input raises a serialization error."""
    with pytest.raises(SessionSerializationError):
        loads(data)


def test_php_session_format_round_trip():
    """Test name|value records reproduce the content."""
    serializer = PhpSessionSerializer()
    content = {"foo": "bar", "arr": ["foo"], "n": None, "num": 3, "flag": False}
    encoded = serializer.encode(content)
    assert encoded.startswith(b'foo|s:3:"bar";arr|a:1:{i:0;s:3:"foo";}')
    assert serializer.decode(encoded) == content


def test_php_session_format_skips_pipe_keys():
    """Test keys containing the record separator are not written."""
    assert PhpSessionSerializer().encode({"a|b": 1, "ok": 2}) == b"ok|i:2;"


def test_php_session_format_pipe_in_value():
    """Test a separator inside a string value is not a record boundary."""
    assert PhpSessionSerializer().decode(b'a|s:3:"x|y";b|i:1;') == {"a": "x|y", "b": 1}


def test_php_session_format_malformed():
    """Test data without a record separator is rejected."""
    with pytest.raises(SessionSerializationError):
        PhpSessionSerializer().decode(b"foo")


def test_php_serialize_format():
    """Test the whole-array format."""
    serializer = PhpSerializeSessionSerializer()
    assert serializer.encode({"foo": "bar"}) == b'a:1:{s:3:"foo";s:3:"bar";}'
    assert serializer.decode(b'a:1:{s:3:"foo";s:3:"bar";}') == {"foo": "bar"}
    assert serializer.decode(b"") == {}
    assert serializer.decode(b"a:0:{}") == {}
    with pytest.raises(SessionSerializationError):
        serializer.decode(b"i:1;")


def test_get_serializer():
    """Test serializer lookup by setting value."""
    assert isinstance(get_serializer("php"), PhpSessionSerializer)
    assert isinstance(get_serializer(" PHP_SERIALIZE "), PhpSerializeSessionSerializer)
    assert isinstance(get_serializer(""), PhpSessionSerializer)
    with pytest.raises(SessionConfigError):
        get_serializer("wddx")


def test_session_decode_merges(session, recording_handler):
    """Test decode adds keys without dropping existing ones."""
    session.set_save_handler(recording_handler).start()
    session.set("keep", 1)
    session.decode(b'new|s:1:"v";keep|i:2;')
    assert session.all() == {"keep": 2, "new": "v"}


def test_session_encode_decode_round_trip(session, make_session, recording_handler):
    """Test encode then decode into an empty session reproduces content."""
    session.set_save_handler(recording_handler).start()
    session.set("s", "text").set("i", 1).set("l", [1, "two", [3]]).set("d", {"k": "v"}).set("e", {})

    other = make_session(recording_handler)
    other.set_id("fresh").start()
    other.decode(session.encode())
    assert other.all() == session.all()
