import atexit
import copy
import logging
import os
import random
import secrets
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from ...config.provider import ConfigProvider, EnvConfigProvider
from ...errors import SessionConfigError, SessionSerializationError, SessionStateError
from ..config import RESERVED_KEYS, SessionConfig
from ..cookie import CookieNegotiator, ResponseCookie
from ..handler import CallbackHandler, SaveMethods, SessionHandler
from ..serializer import as_bytes, get_serializer
from ..storage import (
    BackendRegistry,
    create_native_handler,
    default_registry,
    detect_native_backend,
    native_path,
)

logger = logging.getLogger(__name__)


class ResolutionState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Resolution:
    """Either unresolved, or resolved to a value."""

    state: ResolutionState = ResolutionState.UNRESOLVED
    value: Any = None

    @classmethod
    def resolved(cls, value: Any) -> "Resolution":
        return cls(ResolutionState.RESOLVED, value)

    @property
    def is_resolved(self) -> bool:
        return self.state is ResolutionState.RESOLVED


UNRESOLVED = Resolution()


@dataclass(frozen=True)
class NativeBackend:
    """A well-known backend, addressed by tag and native path string."""

    tag: str


@dataclass(frozen=True)
class BootBackend:
    """Backend state captured when configuration is locked."""

    handler: Any
    path: Any
    register_shutdown: bool


def _same_handler(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def _commit_at_exit(ref: "weakref.ReferenceType[Session]") -> None:
    session = ref()
    if session is not None and session._register_shutdown and session.is_started():
        logger.debug("Committing open session at interpreter exit")
        session.close()


class Session:
    """
    Per-client session engine.

    Owns the settings, the backend identity and path, the live content
    of the current session and the cookie negotiation state. One instance
    serves one logical session at a time and can be reused for the next
    one after release(), which restores the locked boot configuration.

    Usage:
        with Session.boot({"save_handler": "files", "save_path": "/tmp"}) as session:
            session.set_request_cookies(request_cookies)
            session.start()
            session["user"] = "alice"
            session.close()
            header = session.get_response_cookie(as_line=True)
    """

    def __init__(
        self,
        handler: Any = None,
        path: Any = None,
        *,
        provider: Optional[ConfigProvider] = None,
        registry: Optional[BackendRegistry] = None,
    ):
        """
        Initialize session engine.

        Args:
            handler: Backend identity (name, handler class or handler instance)
            path: Backend path or address data
            provider: Source of ambient defaults (default: environment)
            registry: Backend name registry (default: built-in registry)
        """
        self.provider = provider or EnvConfigProvider()
        self.config = SessionConfig(self.provider.get_ini_defaults())
        self.registry = registry or default_registry
        self.cookies = CookieNegotiator()

        self._user_handler: Any = None
        self._user_path: Any = None
        self._handler_state = UNRESOLVED
        self._path_state = UNRESOLVED
        self._register_shutdown = True
        self._shutdown_hooked = False
        self._boot_backend: Optional[BootBackend] = None
        self._native_handlers: Dict[str, Any] = {}
        self._active_handler: Any = None

        self._id = ""
        self._started = False
        self._loaded = False
        self._content: Dict[str, Any] = {}
        self._snapshot: Dict[str, Any] = {}
        self._retired_id: Optional[str] = None

        if handler is not None:
            self._set_save_handler(handler, True, first=True)
        if path is not None:
            self._set_save_path(path, first=True)

    @classmethod
    def boot(cls, options: Optional[Mapping[str, Any]] = None, handler: Any = None, path: Any = None, **kwargs) -> "Session":
        """Create a session whose configuration is locked as its boot snapshot."""
        session = cls(handler, path, **kwargs)
        session.set_ini(dict(options or {}), True)
        return session

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # -- settings ---------------------------------------------------------

    def set_ini(self, name: Union[str, Mapping[str, Any]], value: Any = None) -> "Session":
        """
        Change session settings.

        A mapping with value=True is locked as the boot configuration:
        release() puts every setting changed afterwards back to it.

        Raises:
            SessionStateError: If locking while a session is started
            SessionConfigError: If locking and the backend cannot be resolved
        """
        if isinstance(name, Mapping):
            options = dict(name)
            lock = value is True
        elif isinstance(name, str):
            if not name:
                return self
            options = {name: value}
            lock = False
        else:
            raise TypeError("set_ini() expects a setting name or a mapping of settings")

        if lock and self.is_started():
            raise SessionStateError("A session has already been started")

        boot: Dict[str, Any] = dict(self.config.boot or {})
        for key, val in options.items():
            reserved = RESERVED_KEYS.get(key)
            if reserved == "save_handler":
                self._set_save_handler(val, True, first=lock)
            elif reserved == "save_path":
                self._set_save_path(val, first=lock)
            elif self.config.apply(key, val, lock=lock) and lock:
                boot[key] = self.config.get(key)

        if lock:
            handler, path = self._load_backend()
            boot["save_handler"] = self._user_handler
            boot["save_path"] = self._user_path
            self.config.lock(boot)
            self._boot_backend = BootBackend(handler, path, self._register_shutdown)
            logger.debug(f"Locked boot configuration: {sorted(boot)}")
        return self

    def get_ini(self, name: str, default: Any = None) -> Any:
        key = RESERVED_KEYS.get(name)
        if key == "save_handler":
            return self.get_save_handler()
        if key == "save_path":
            return self.get_save_path()
        return self.config.get(name, default)

    def is_ini(self, name: str) -> bool:
        """Whether a setting is switched on (1, true, on, yes)."""
        return self.config.is_truthy(name)

    def set_cookie_name(self, name: str) -> "Session":
        return self.set_ini("name", name)

    def get_cookie_name(self) -> str:
        return self.get_ini("name", "")

    def set_cookie_path(self, path: str) -> "Session":
        return self.set_ini("cookie_path", path)

    def get_cookie_path(self) -> str:
        return self.get_ini("cookie_path", "")

    def set_cookie_lifetime(self, lifetime: int) -> "Session":
        return self.set_ini("cookie_lifetime", int(lifetime))

    def get_cookie_lifetime(self) -> int:
        return int(self.get_ini("cookie_lifetime") or 0)

    def set_cookie_domain(self, domain: Optional[str]) -> "Session":
        return self.set_ini("cookie_domain", domain)

    def get_cookie_domain(self) -> str:
        return self.get_ini("cookie_domain", "")

    def set_cookie_samesite(self, samesite: Optional[str]) -> "Session":
        return self.set_ini("cookie_samesite", samesite)

    def get_cookie_samesite(self) -> str:
        return self.get_ini("cookie_samesite", "")

    def set_cookie_httponly(self, httponly: bool) -> "Session":
        return self.set_ini("cookie_httponly", bool(httponly))

    def is_cookie_httponly(self) -> bool:
        return self.is_ini("cookie_httponly")

    def set_cookie_secure(self, secure: bool) -> "Session":
        return self.set_ini("cookie_secure", bool(secure))

    def is_cookie_secure(self) -> bool:
        return self.is_ini("cookie_secure")

    # -- backend ----------------------------------------------------------

    def set_save_handler(self, handler: Any, register_shutdown: bool = True) -> "Session":
        """
        Declare the storage backend.

        Args:
            handler: Well-known tag or registered name, a handler class
                (instantiated with this session) or a handler instance
            register_shutdown: Commit an open session at interpreter exit
        """
        return self._set_save_handler(handler, register_shutdown)

    def set_save_methods(self, open, close, read, write, destroy, gc) -> "Session":
        """Declare the storage backend as six standalone callables."""
        methods = SaveMethods(open=open, close=close, read=read, write=write, destroy=destroy, gc=gc)
        return self._set_save_handler(CallbackHandler(self, methods))

    def get_save_handler(self) -> Any:
        if self._user_handler is None or self._user_handler == "":
            return self.config.get_ini_default("save_handler")
        return self._user_handler

    def set_save_path(self, path: Any) -> "Session":
        return self._set_save_path(path)

    def get_save_path(self) -> Any:
        if self._user_path is None or self._user_path == "":
            return self.config.get_ini_default("save_path", "")
        return self._user_path

    def _set_save_handler(self, handler: Any, register_shutdown: bool = True, first: bool = False) -> "Session":
        if not _same_handler(handler, self._user_handler):
            if not isinstance(handler, (str, type)) and not isinstance(handler, SessionHandler):
                raise SessionConfigError(
                    "Session save handler must be a string, a handler class or a handler instance"
                )
            self._user_handler = handler
            self._handler_state = UNRESOLVED
        elif (
            register_shutdown != self._register_shutdown
            and self._handler_state.is_resolved
            and not isinstance(self._handler_state.value, NativeBackend)
        ):
            # The shutdown hook is part of how a handler instance is activated
            self._handler_state = UNRESOLVED
        self._register_shutdown = register_shutdown
        if not first and not self._handler_state.is_resolved:
            self.config.dirty.add("save_handler")
        return self

    def _set_save_path(self, path: Any, first: bool = False) -> "Session":
        if isinstance(path, str) and os.path.isdir(path):
            path = os.path.realpath(path)
        if path != self._user_path:
            self._path_state = UNRESOLVED
            self._user_path = path
            if not first:
                self.config.dirty.add("save_path")
        return self

    def resolve_backend(self) -> Any:
        """
        Resolve the declared backend identity into an active backend.

        Returns:
            A NativeBackend for well-known tags, else a handler instance

        Raises:
            SessionConfigError: If the identity names no known backend
        """
        if self._handler_state.is_resolved:
            return self._handler_state.value

        handler = self.get_save_handler()
        if isinstance(handler, type):
            instance = handler(self)
            if not isinstance(instance, SessionHandler):
                raise SessionConfigError(f"Cannot instance session handler '{handler.__name__}' - session startup failed")
            return self._activate(instance)
        if not isinstance(handler, str):
            return self._activate(handler)

        tag = detect_native_backend(handler)
        if tag:
            return self._activate(NativeBackend(tag))

        instance = self.registry.create(handler, self)
        if instance is None or not isinstance(instance, SessionHandler):
            logger.error(f"Unknown session backend '{handler}'")
            raise SessionConfigError(f"Cannot resolve session handler '{handler}' - session startup failed")
        return self._activate(instance)

    def resolve_backend_path(self) -> str:
        """
        Resolve the declared path for the active backend.

        Raises:
            SessionConfigError: If the path is unusable for a well-known backend
        """
        if self._path_state.is_resolved:
            return self._path_state.value
        backend = self.resolve_backend()
        path = self.get_save_path()
        if isinstance(backend, NativeBackend):
            resolved = native_path(backend.tag, path)
            if resolved is None:
                raise SessionConfigError(f"Invalid session save path for session handler: {backend.tag}")
        elif isinstance(path, str):
            resolved = path
        else:
            # Handlers fetch structured paths from get_save_path() themselves
            resolved = ""
        self._path_state = Resolution.resolved(resolved)
        return resolved

    def _load_backend(self) -> Tuple[Any, str]:
        backend = self.resolve_backend()
        return backend, self.resolve_backend_path()

    def _activate(self, backend: Any) -> Any:
        if not isinstance(backend, NativeBackend) and self._register_shutdown and not self._shutdown_hooked:
            atexit.register(_commit_at_exit, weakref.ref(self))
            self._shutdown_hooked = True
        self._handler_state = Resolution.resolved(backend)
        logger.info(f"Activated session backend {self._describe(backend)}")
        return backend

    @staticmethod
    def _describe(backend: Any) -> str:
        if isinstance(backend, NativeBackend):
            return f"'{backend.tag}'"
        return type(backend).__name__

    def _handler_for(self, backend: Any):
        if not isinstance(backend, NativeBackend):
            return backend
        handler = self._native_handlers.get(backend.tag)
        if handler is None:
            handler = self._native_handlers[backend.tag] = create_native_handler(backend.tag, self)
        return handler

    # -- lifecycle --------------------------------------------------------

    def set_id(self, session_id: str) -> "Session":
        self._id = session_id
        return self

    def get_id(self) -> str:
        return self._id

    def is_started(self) -> bool:
        return self._started

    def _generate_id(self) -> str:
        length = min(max(int(self.get_ini("sid_length") or 32), 22), 256)
        return secrets.token_hex((length + 1) // 2)[:length]

    def start(self, options: Optional[Mapping[str, Any]] = None) -> bool:
        """
        Start the session: resolve the backend, read and decode the stored content.

        Args:
            options: Settings applied with set_ini() before starting

        Returns:
            True if the session started, False on backend failure

        Raises:
            SessionStateError: If a session is already started
            SessionConfigError: If backend, path or serializer cannot be resolved
        """
        if self.is_started():
            raise SessionStateError("A session has already been started")
        if options:
            self.set_ini(options)

        adopted = self.cookies.resolve(self._id, self.get_cookie_name())
        if adopted:
            self._id = adopted

        backend, path = self._load_backend()
        handler = self._handler_for(backend)
        serializer = get_serializer(self.get_ini("serialize_handler"))
        if not self._id:
            self._id = self._generate_id()

        if not handler.open(path, self.get_cookie_name()):
            logger.error(f"Session backend {self._describe(backend)} failed to open")
            return False
        try:
            content = serializer.decode(as_bytes(handler.read(self._id)))
        except SessionSerializationError as e:
            logger.error(f"Failed to decode stored session: {e}")
            handler.close()
            return False

        self._active_handler = handler
        self._content = content
        self._snapshot = copy.deepcopy(content)
        self._started = True
        self._loaded = True
        self._maybe_gc(handler)
        logger.debug(f"Session started sid={self._id}")
        return True

    def _maybe_gc(self, handler) -> None:
        probability = int(self.get_ini("gc_probability") or 0)
        divisor = int(self.get_ini("gc_divisor") or 0)
        if probability <= 0 or divisor <= 0 or random.randint(1, divisor) > probability:
            return
        if not handler.gc(int(self.get_ini("gc_maxlifetime") or 0)):
            logger.debug("Session garbage collection reported failure")

    def _commit(self, content: Dict[str, Any]) -> bool:
        handler = self._active_handler
        data = get_serializer(self.get_ini("serialize_handler")).encode(content)
        written = handler.write(self._id, data)
        retired, self._retired_id = self._retired_id, None
        if retired is not None:
            if written:
                handler.destroy(retired)
            else:
                logger.warning(f"Keeping previous session record sid={retired}")
        closed = handler.close()
        self._started = False
        self._active_handler = None
        if not written:
            logger.warning(f"Failed to write session sid={self._id}")
        return written and closed

    def close(self) -> "Session":
        """Write the content to the backend and end the session; content stays readable."""
        if self._started:
            self._commit(self._content)
            logger.debug(f"Session closed sid={self._id}")
        self._snapshot = copy.deepcopy(self._content)
        return self

    def reset(self) -> "Session":
        """Discard changes made since start or the last close."""
        if self._started:
            self._content = copy.deepcopy(self._snapshot)
        return self

    def abort(self) -> "Session":
        """
        End the session persisting the content it started with.

        The in-memory content keeps the changes for the rest of the request.
        """
        if self._started:
            current = self._content
            self._commit(self._snapshot)
            self._content = current
        return self

    def destroy(self) -> "Session":
        """Remove the stored record and end the session; in-memory content is kept."""
        if self._started:
            handler = self._active_handler
            if not handler.destroy(self._id):
                logger.warning(f"Failed to destroy session sid={self._id}")
            if self._retired_id is not None:
                handler.destroy(self._retired_id)
                self._retired_id = None
            handler.close()
            self._started = False
            self._active_handler = None
        return self

    def regenerate(self, delete_old: bool = False) -> "Session":
        """
        Move the started session to a new identifier.

        Args:
            delete_old: Remove the old record when the new one is
                committed, instead of leaving the current content stored
                under the old identifier
        """
        if not self._started:
            logger.warning("Cannot regenerate the id of a session that is not started")
            return self
        handler = self._active_handler
        old_id = self._id
        if delete_old:
            # Removed by the next commit, once the new id is stored
            if self._retired_id is None:
                self._retired_id = old_id
        else:
            handler.write(old_id, get_serializer(self.get_ini("serialize_handler")).encode(self._content))
        self._id = self._generate_id()
        self.cookies.reissue()
        logger.debug(f"Session regenerated sid={self._id}")
        return self

    def release(self) -> None:
        """
        Tear the session down and restore the boot configuration.

        Commits a started session, drops all in-memory state and puts every
        setting changed since boot back to its boot value. Safe to call
        more than once.
        """
        if self._started:
            self._commit(self._content)
            self._id = ""
        self._started = False
        self._loaded = False
        self.cookies.reset()
        self._content = {}
        self._snapshot = {}

        dirty = self.config.take_dirty()
        boot = self.config.boot
        if boot is None:
            return
        handler_changed = path_changed = False
        for name in dirty:
            if name == "save_handler":
                handler_changed = True
                self._user_handler = boot.get("save_handler")
            elif name == "save_path":
                path_changed = True
                self._user_path = boot.get("save_path")
            else:
                self.config.restore(name, boot.get(name))
        if handler_changed:
            self._register_shutdown = self._boot_backend.register_shutdown
            self._activate(self._boot_backend.handler)
        if path_changed:
            self._path_state = Resolution.resolved(self._boot_backend.path)
        if dirty:
            logger.debug(f"Restored boot configuration for {sorted(dirty)}")

    # -- cookies ----------------------------------------------------------

    def set_request_cookies(self, cookies: Union[Mapping[str, str], bool]) -> "Session":
        """
        Hand in the cookies of the current request.

        A mapping switches to self-managed mode: the identifier is taken
        from it on start(), and get_response_cookie() tells whether a
        cookie must be sent back. False returns to external transport.
        """
        self.cookies.set_request_cookies(self.config, cookies)
        return self

    def get_response_cookie(self, as_line: bool = False) -> Optional[Union[ResponseCookie, str]]:
        cookie = self.cookies.build(self.config, self._id)
        if cookie is None or not as_line:
            return cookie
        return cookie.to_line()

    # -- content ----------------------------------------------------------

    def encode(self) -> str:
        data = get_serializer(self.get_ini("serialize_handler")).encode(self._content)
        return data.decode("utf-8", errors="surrogateescape")

    def decode(self, data: Union[str, bytes]) -> "Session":
        """Merge serialized data into the content, keeping existing keys."""
        decoded = get_serializer(self.get_ini("serialize_handler")).decode(as_bytes(data))
        self._content.update(decoded)
        return self

    def all(self) -> Dict[str, Any]:
        return dict(self._content) if self._loaded else {}

    def has(self, name: str) -> bool:
        return self._loaded and name in self._content

    def get(self, name: str, default: Any = None) -> Any:
        if self.has(name):
            return self._content[name]
        return default

    def set(self, name: str, value: Any) -> "Session":
        if self._loaded:
            self._content[name] = value
        return self

    def remove(self, name: str) -> "Session":
        if self._loaded:
            self._content.pop(name, None)
        return self

    def clear(self) -> "Session":
        if self._started:
            self._content.clear()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._content)

    def __getitem__(self, name: str) -> Any:
        if not self.has(name):
            raise KeyError(name)
        return self._content[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        self.remove(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._content) if self._loaded else 0
