import time
from email.utils import formatdate
from typing import Dict, Optional, Union

from pydantic import BaseModel


class ResponseCookie(BaseModel):
    """Set-Cookie data for a newly issued session identifier."""

    name: str
    value: str
    expires: int = 0
    path: str = ""
    domain: str = ""
    samesite: str = ""
    priority: str = "High"
    secure: bool = False
    httponly: bool = False

    def to_line(self) -> str:
        """
        Format as a Set-Cookie header value.

        Falsy attributes are omitted; expires=0 means session-scoped.
        """
        attributes = [
            ("Expires", formatdate(self.expires, usegmt=True) if self.expires else ""),
            ("Path", self.path),
            ("Domain", self.domain),
            ("SameSite", self.samesite),
            ("Priority", self.priority),
            ("Secure", self.secure),
            ("HttpOnly", self.httponly),
        ]
        parts = [f"{self.name}={self.value}"]
        for key, value in attributes:
            if not value:
                continue
            parts.append(key if value is True else f"{key}={value}")
        return "; ".join(parts)


class CookieNegotiator:
    """
    Decides who carries the session identifier between client and server.

    External mode (the default): the identifier is transported by whoever
    hosts the session, nothing is emitted. Self-managed mode: request
    cookies are handed in before start, and a response cookie is produced
    only when no identifier was found in them.
    """

    def __init__(self):
        self._request_cookies: Optional[Dict[str, str]] = None
        self._must_emit = False
        self._managed = False
        self._saved_use_cookies: Optional[bool] = None

    @property
    def self_managed(self) -> bool:
        return self._managed

    @property
    def must_emit(self) -> bool:
        return self._must_emit

    def set_request_cookies(self, config, cookies: Union[Dict[str, str], bool]) -> None:
        if cookies is False:
            if self._saved_use_cookies is not None:
                config.restore("use_cookies", self._saved_use_cookies)
                self._saved_use_cookies = None
            self._request_cookies = None
            self._must_emit = False
            self._managed = False
            return
        if self._saved_use_cookies is None:
            self._saved_use_cookies = config.is_truthy("use_cookies")
            config.restore("use_cookies", False)
        self._request_cookies = dict(cookies or {})
        self._must_emit = False
        self._managed = True

    def resolve(self, current_id: str, cookie_name: str) -> Optional[str]:
        """
        Consume pending request cookies before start.

        Returns:
            Identifier to adopt, or None
        """
        if self._request_cookies is None:
            return None
        cookies, self._request_cookies = self._request_cookies, None
        if not current_id and cookie_name and cookies.get(cookie_name):
            return str(cookies[cookie_name])
        self._must_emit = True
        return None

    def build(self, config, session_id: str) -> Optional[ResponseCookie]:
        name = config.get("name")
        if not self._must_emit or not name:
            return None
        lifetime = int(config.get("cookie_lifetime") or 0)
        return ResponseCookie(
            name=name,
            value=session_id,
            expires=int(time.time()) + lifetime if lifetime else 0,
            path=config.get("cookie_path") or "",
            domain=config.get("cookie_domain") or "",
            samesite=config.get("cookie_samesite") or "",
            secure=config.is_truthy("cookie_secure"),
            httponly=config.is_truthy("cookie_httponly"),
        )

    def reissue(self) -> None:
        """A new identifier was assigned, send it back if self-managed."""
        if self._managed:
            self._must_emit = True

    def reset(self) -> None:
        self._request_cookies = None
        self._must_emit = False
        self._managed = False
