"""
Sessionkit - Session State Management

Server-side sessions with pluggable storage backends, usable from
long-lived worker processes that serve many requests.

Modules:
- handler: Storage capability contract and callable adapter
- storage: Built-in backends (memory, files, redis, memcached) and registry
- serializer: Session wire format
- config: Layered settings with boot snapshot
- cookie: Session cookie negotiation
- session: Session lifecycle engine
"""

from .errors import SessionConfigError, SessionError, SessionSerializationError, SessionStateError
from .logging_config import configure_logging
from .modules.cookie import ResponseCookie
from .modules.handler import CallbackHandler, SaveMethods, SessionHandler
from .modules.session import Session
from .modules.storage import ServerAddress, default_registry, register_backend

__version__ = "0.1.0"

__all__ = [
    "Session",
    "SessionHandler",
    "SaveMethods",
    "CallbackHandler",
    "ResponseCookie",
    "ServerAddress",
    "default_registry",
    "register_backend",
    "SessionError",
    "SessionStateError",
    "SessionConfigError",
    "SessionSerializationError",
    "configure_logging",
]
