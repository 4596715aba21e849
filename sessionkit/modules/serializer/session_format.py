import logging
from typing import Any, Dict, Union

from ...errors import SessionConfigError, SessionSerializationError
from .codec import Reader, dumps, loads

logger = logging.getLogger(__name__)


class PhpSessionSerializer:
    """Flat `name|<value>` records, concatenated in insertion order."""

    name = "php"

    def encode(self, content: Dict[str, Any]) -> bytes:
        parts = []
        for key, value in content.items():
            key = str(key)
            if "|" in key:
                logger.warning(f"Skipping session key containing '|': {key!r}")
                continue
            parts.append(key.encode("utf-8") + b"|" + dumps(value))
        return b"".join(parts)

    def decode(self, data: bytes) -> Dict[str, Any]:
        reader = Reader(data)
        result: Dict[str, Any] = {}
        while reader.pos < len(data):
            bar = data.find(b"|", reader.pos)
            if bar < 0:
                raise SessionSerializationError(f"Missing '|' after offset {reader.pos}")
            name = data[reader.pos:bar].decode("utf-8", errors="replace")
            reader.pos = bar + 1
            result[name] = reader.read_value()
        return result


class PhpSerializeSessionSerializer:
    """The whole content mapping serialized as one array."""

    name = "php_serialize"

    def encode(self, content: Dict[str, Any]) -> bytes:
        return dumps(dict(content))

    def decode(self, data: bytes) -> Dict[str, Any]:
        if not data:
            return {}
        value = loads(data)
        if isinstance(value, list):
            value = dict(enumerate(value))
        if not isinstance(value, dict):
            raise SessionSerializationError("Serialized session is not an array")
        return {str(key): item for key, item in value.items()}


SERIALIZERS = {
    PhpSessionSerializer.name: PhpSessionSerializer(),
    PhpSerializeSessionSerializer.name: PhpSerializeSessionSerializer(),
}


def get_serializer(name: str):
    """
    Look up a session serializer by its `serialize_handler` name.

    Raises:
        SessionConfigError: If no serializer has that name
    """
    serializer = SERIALIZERS.get((name or "php").strip().lower())
    if serializer is None:
        raise SessionConfigError(f"Unknown session serialize handler '{name}'")
    return serializer


def as_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8", errors="surrogateescape")
    return bytes(data or b"")
