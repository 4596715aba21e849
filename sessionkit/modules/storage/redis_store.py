"""
Redis backend for sessions.

The save path is a comma separated list of `tcp://host:port?weight=N`
entries; the first entry is used. Query parameters `database`, `auth`
and `prefix` are honored.
"""

import logging
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit

import redis

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "session:"
DEFAULT_TTL = 1440


class RedisHandler:
    """Storage of session payloads as Redis string keys with a TTL."""

    def __init__(self, session=None, client_factory: Optional[Callable[..., redis.Redis]] = None):
        """
        Initialize redis handler.

        Args:
            session: Owning session, used to read gc_maxlifetime
            client_factory: Callable building a client (default redis.Redis)
        """
        self.session = session
        self.client_factory = client_factory or redis.Redis
        self.client: Optional[redis.Redis] = None
        self.prefix = DEFAULT_PREFIX
        self._save_path: Optional[str] = None

    def _ttl(self) -> int:
        if self.session is None:
            return DEFAULT_TTL
        return int(self.session.get_ini("gc_maxlifetime", DEFAULT_TTL) or DEFAULT_TTL)

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def open(self, save_path, session_name: str) -> bool:
        save_path = str(save_path or "tcp://127.0.0.1:6379")
        if self.client is not None and save_path == self._save_path:
            return True
        first = save_path.split(",")[0].strip()
        if "://" not in first:
            first = f"tcp://{first}"
        parts = urlsplit(first)
        query = {key: values[0] for key, values in parse_qs(parts.query).items()}
        self.prefix = query.get("prefix", DEFAULT_PREFIX)
        try:
            self.client = self.client_factory(
                host=parts.hostname or "127.0.0.1",
                port=parts.port or 6379,
                db=int(query.get("database", 0)),
                password=query.get("auth"),
            )
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Failed to create redis client for {first}: {e}")
            return False
        self._save_path = save_path
        logger.info(f"Redis session storage at {parts.hostname}:{parts.port or 6379}")
        return True

    def close(self) -> bool:
        return True

    def read(self, session_id: str) -> bytes:
        try:
            data = self.client.get(self._key(session_id))
        except redis.RedisError as e:
            logger.error(f"Failed to read session from redis: {e}")
            return b""
        if data is None:
            return b""
        return data.encode("utf-8") if isinstance(data, str) else data

    def write(self, session_id: str, data: bytes) -> bool:
        try:
            self.client.setex(self._key(session_id), self._ttl(), data)
        except redis.RedisError as e:
            logger.error(f"Failed to write session to redis: {e}")
            return False
        return True

    def destroy(self, session_id: str) -> bool:
        try:
            self.client.delete(self._key(session_id))
        except redis.RedisError as e:
            logger.error(f"Failed to delete session from redis: {e}")
            return False
        return True

    def gc(self, max_lifetime: int) -> bool:
        # Keys expire on their own TTL
        return True
