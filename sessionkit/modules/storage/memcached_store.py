"""
Memcached backend for sessions.

The save path lists servers as `host:port[:weight]` or
`tcp://host:port[?weight=N]`, comma separated. Weights are accepted
but ignored, keys are spread evenly by the hash client.
"""

import logging
from typing import Callable, Optional

from pymemcache.client.hash import HashClient
from pymemcache.exceptions import MemcacheError

from .address import parse_servers

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "session."
DEFAULT_TTL = 1440


class MemcachedHandler:
    """Storage of session payloads in one or more memcached servers."""

    def __init__(self, session=None, client_factory: Optional[Callable[..., HashClient]] = None):
        self.session = session
        self.client_factory = client_factory or HashClient
        self.client: Optional[HashClient] = None
        self._save_path: Optional[str] = None

    def _ttl(self) -> int:
        if self.session is None:
            return DEFAULT_TTL
        return int(self.session.get_ini("gc_maxlifetime", DEFAULT_TTL) or DEFAULT_TTL)

    def open(self, save_path, session_name: str) -> bool:
        save_path = str(save_path or "127.0.0.1:11211")
        if self.client is not None and save_path == self._save_path:
            return True
        servers = []
        for host, port, _weight in parse_servers(save_path, "memcached"):
            if (host, port) not in servers:
                servers.append((host, port))
        if not servers:
            logger.error(f"No memcached servers in save path {save_path!r}")
            return False
        self.client = self.client_factory(servers)
        self._save_path = save_path
        logger.info(f"Memcached session storage on {len(servers)} server(s)")
        return True

    def close(self) -> bool:
        return True

    def read(self, session_id: str) -> bytes:
        try:
            data = self.client.get(DEFAULT_PREFIX + session_id)
        except (MemcacheError, OSError) as e:
            logger.error(f"Failed to read session from memcached: {e}")
            return b""
        return data or b""

    def write(self, session_id: str, data: bytes) -> bool:
        try:
            return bool(self.client.set(DEFAULT_PREFIX + session_id, data, expire=self._ttl(), noreply=False))
        except (MemcacheError, OSError) as e:
            logger.error(f"Failed to write session to memcached: {e}")
            return False

    def destroy(self, session_id: str) -> bool:
        try:
            self.client.delete(DEFAULT_PREFIX + session_id, noreply=False)
        except (MemcacheError, OSError) as e:
            logger.error(f"Failed to delete session from memcached: {e}")
            return False
        return True

    def gc(self, max_lifetime: int) -> bool:
        return True
