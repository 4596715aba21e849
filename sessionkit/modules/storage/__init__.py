"""
Storage Module - Black Box Interface

Purpose: Concrete session storage backends and their lookup by name
Interface: BackendRegistry, default_registry, register_backend(),
           detect_native_backend(), create_native_handler(), native_path()
Hidden: File locking, Redis/Memcached clients, connection-string syntax

Every handler here satisfies the SessionHandler contract and can be
replaced with any other implementation of it.
"""

from .address import ServerAddress, native_path, parse_servers, stringify_address
from .file_store import FileHandler
from .memcached_store import MemcachedHandler
from .memory import MemoryHandler
from .redis_store import RedisHandler
from .registry import (
    BackendRegistry,
    create_native_handler,
    default_registry,
    detect_native_backend,
    register_backend,
)

__all__ = [
    "BackendRegistry",
    "default_registry",
    "register_backend",
    "detect_native_backend",
    "create_native_handler",
    "native_path",
    "parse_servers",
    "stringify_address",
    "ServerAddress",
    "FileHandler",
    "MemoryHandler",
    "RedisHandler",
    "MemcachedHandler",
]
