"""
Length-prefixed tagged value codec.

Wire tags:
    N;                      null
    b:0; / b:1;             boolean
    i:<int>;                integer
    d:<float>;              float (INF, -INF, NAN allowed)
    s:<len>:"<bytes>";      string, len counts bytes
    a:<n>:{<key><value>...} array, keys are i: or s: entries
    O:<len>:"<class>":<n>:{...}  object, decoded into a dict of properties
"""

import math
from typing import Any, Dict, List, Tuple, Union

from ...errors import SessionSerializationError


def dumps(value: Any) -> bytes:
    """Serialize a value into the tagged wire format."""
    if value is None:
        return b"N;"
    if isinstance(value, bool):
        return b"b:1;" if value else b"b:0;"
    if isinstance(value, int):
        return b"i:%d;" % value
    if isinstance(value, float):
        return b"d:" + _format_float(value).encode("ascii") + b";"
    if isinstance(value, str):
        value = value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return b's:%d:"' % len(value) + bytes(value) + b'";'
    if isinstance(value, (list, tuple)):
        return _dump_array(enumerate(value), len(value))
    if isinstance(value, dict):
        return _dump_array(value.items(), len(value))
    raise SessionSerializationError(f"Cannot serialize value of type {type(value).__name__}")


def loads(data: Union[bytes, str]) -> Any:
    """Deserialize exactly one value; trailing bytes are an error."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    reader = Reader(data)
    value = reader.read_value()
    if reader.pos != len(data):
        raise SessionSerializationError(f"Unexpected trailing data at offset {reader.pos}")
    return value


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NAN"
    if math.isinf(value):
        return "INF" if value > 0 else "-INF"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _dump_array(items, size: int) -> bytes:
    parts = [b"a:%d:{" % size]
    for key, item in items:
        if isinstance(key, bool) or not isinstance(key, (int, str)):
            key = str(key)
        parts.append(dumps(key))
        parts.append(dumps(item))
    parts.append(b"}")
    return b"".join(parts)


class Reader:
    """Cursor over serialized bytes, used by the session serializers as well."""

    def __init__(self, data: bytes, pos: int = 0):
        self.data = data
        self.pos = pos

    def _fail(self, message: str):
        raise SessionSerializationError(f"{message} at offset {self.pos}")

    def _expect(self, token: bytes) -> None:
        end = self.pos + len(token)
        if self.data[self.pos:end] != token:
            self._fail(f"Expected {token!r}")
        self.pos = end

    def _read_until(self, delimiter: bytes) -> bytes:
        end = self.data.find(delimiter, self.pos)
        if end < 0:
            self._fail(f"Missing {delimiter!r}")
        chunk = self.data[self.pos:end]
        self.pos = end + len(delimiter)
        return chunk

    def _read_int(self, delimiter: bytes) -> int:
        chunk = self._read_until(delimiter)
        try:
            return int(chunk)
        except ValueError:
            self._fail(f"Invalid integer {chunk!r}")

    def _read_string(self) -> bytes:
        length = self._read_int(b":")
        self._expect(b'"')
        raw = self.data[self.pos:self.pos + length]
        if len(raw) != length:
            self._fail("String length exceeds data")
        self.pos += length
        self._expect(b'"')
        return raw

    def read_value(self) -> Any:
        tag = self.data[self.pos:self.pos + 1]
        if not tag:
            self._fail("Unexpected end of data")
        self.pos += 1
        if tag == b"N":
            self._expect(b";")
            return None
        self._expect(b":")
        if tag == b"b":
            flag = self._read_until(b";")
            if flag not in (b"0", b"1"):
                self._fail(f"Invalid boolean {flag!r}")
            return flag == b"1"
        if tag == b"i":
            return self._read_int(b";")
        if tag == b"d":
            return self._read_float()
        if tag == b"s":
            raw = self._read_string()
            self._expect(b";")
            return _text(raw)
        if tag == b"a":
            return self._read_array()
        if tag == b"O":
            self._read_string()
            self._expect(b":")
            return _strip_visibility(self._read_pairs())
        self._fail(f"Unsupported type tag {tag!r}")

    def _read_float(self) -> float:
        chunk = self._read_until(b";")
        special = {b"INF": math.inf, b"-INF": -math.inf, b"NAN": math.nan}
        if chunk in special:
            return special[chunk]
        try:
            return float(chunk)
        except ValueError:
            self._fail(f"Invalid float {chunk!r}")

    def _read_pairs(self) -> List[Tuple[Any, Any]]:
        size = self._read_int(b":")
        self._expect(b"{")
        pairs = []
        for _ in range(size):
            key = self.read_value()
            if not isinstance(key, (int, str)) or isinstance(key, bool):
                self._fail("Array key must be int or string")
            pairs.append((key, self.read_value()))
        self._expect(b"}")
        return pairs

    def _read_array(self) -> Union[list, dict]:
        pairs = self._read_pairs()
        # An empty array has no keys to tell a list from a mapping
        if pairs and all(key == index for index, (key, _) in enumerate(pairs)) and all(
            isinstance(key, int) for key, _ in pairs
        ):
            return [value for _, value in pairs]
        return dict(pairs)


def _text(raw: bytes) -> Union[str, bytes]:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


def _strip_visibility(pairs) -> Dict[Any, Any]:
    # Non-public properties are encoded as "\0Class\0name" or "\0*\0name"
    result = {}
    for key, value in pairs:
        if isinstance(key, str) and key.startswith("\0"):
            key = key.rsplit("\0", 1)[-1]
        result[key] = value
    return result
