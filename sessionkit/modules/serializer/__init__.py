"""
Serializer Module - Black Box Interface

Purpose: Convert session content to and from the flat storage wire format
Interface: dumps(), loads(), get_serializer()
Hidden: Tag grammar, parsing cursor, object property unmangling

Serializers are chosen by the `serialize_handler` setting.
"""

from .codec import dumps, loads
from .session_format import (
    SERIALIZERS,
    PhpSerializeSessionSerializer,
    PhpSessionSerializer,
    as_bytes,
    get_serializer,
)

__all__ = [
    "dumps",
    "loads",
    "get_serializer",
    "as_bytes",
    "SERIALIZERS",
    "PhpSessionSerializer",
    "PhpSerializeSessionSerializer",
]
