"""Session error taxonomy."""


class SessionError(Exception):
    """Base class for all session errors."""


class SessionStateError(SessionError, RuntimeError):
    """Operation requires an idle session but one is already started."""


class SessionConfigError(SessionError, ValueError):
    """Backend identity or backend path cannot be resolved."""


class SessionSerializationError(SessionError, ValueError):
    """Serialized session data is malformed."""


__all__ = [
    "SessionError",
    "SessionStateError",
    "SessionConfigError",
    "SessionSerializationError",
]
