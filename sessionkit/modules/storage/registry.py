"""
Backend registry.

Two kinds of backend names exist:
- well-known tags (files, redis, memcached), whose path is
  converted into a native connection string before use
- registered names, mapped to a factory receiving the owning session
"""

import importlib.util
import logging
from typing import Callable, Dict, Optional

from .file_store import FileHandler
from .memcached_store import MemcachedHandler
from .memory import MemoryHandler
from .redis_store import RedisHandler

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[object], object]


def _available(module: str) -> bool:
    return importlib.util.find_spec(module) is not None


def detect_native_backend(name: str) -> Optional[str]:
    """
    Map a backend name onto a well-known tag.

    Returns:
        The tag, or None when the name is not well-known or its client
        library is not installed
    """
    lowered = name.strip().lower()
    if lowered == "files":
        return "files"
    if lowered == "redis" and _available("redis"):
        return "redis"
    # Both spellings select the one available memcached client
    if lowered in ("memcache", "memcached") and _available("pymemcache"):
        return "memcached"
    return None


def create_native_handler(tag: str, session=None):
    """Build the handler serving a well-known tag."""
    if tag == "files":
        return FileHandler(session)
    if tag == "redis":
        return RedisHandler(session)
    if tag == "memcached":
        return MemcachedHandler(session)
    raise KeyError(tag)


class BackendRegistry:
    """Mapping of backend name to handler factory."""

    def __init__(self):
        self._factories: Dict[str, HandlerFactory] = {}

    def register(self, name: str, factory: HandlerFactory) -> None:
        key = name.strip().lower()
        if key in self._factories:
            logger.debug(f"Replacing session backend factory '{key}'")
        self._factories[key] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name.strip().lower(), None)

    def create(self, name: str, session=None):
        """
        Instantiate the backend registered under name.

        Returns:
            Handler instance, or None if the name is not registered
        """
        factory = self._factories.get(name.strip().lower())
        if factory is None:
            return None
        return factory(session)

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._factories

    def names(self):
        return sorted(self._factories)


default_registry = BackendRegistry()
default_registry.register("memory", MemoryHandler)


def register_backend(name: str, factory: HandlerFactory) -> None:
    """Register a backend factory in the default registry."""
    default_registry.register(name, factory)
