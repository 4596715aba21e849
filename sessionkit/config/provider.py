"""Ambient session defaults provider following Black Box Design principles."""
import os
from typing import Any, Dict, Mapping, Optional, Protocol

import yaml
from pydantic import BaseModel, Field, validator


# Built-in defaults for every recognized setting, in ini string form
DEFAULT_SETTINGS: Dict[str, str] = {
    "name": "SESSIONID",
    "save_handler": "files",
    "save_path": "",
    "cookie_path": "/",
    "cookie_domain": "",
    "cookie_lifetime": "0",
    "cookie_samesite": "",
    "cookie_httponly": "0",
    "cookie_secure": "0",
    "use_cookies": "1",
    "use_only_cookies": "1",
    "cache_expire": "180",
    "serialize_handler": "php",
    "gc_probability": "1",
    "gc_divisor": "100",
    "gc_maxlifetime": "1440",
    "sid_length": "32",
}

SETTING_DESCRIPTIONS: Dict[str, str] = {
    "name": "Cookie name carrying the session identifier",
    "save_handler": "Backend identity used when none is declared",
    "save_path": "Backend path or address used when none is declared",
    "cookie_path": "Cookie Path attribute",
    "cookie_domain": "Cookie Domain attribute",
    "cookie_lifetime": "Cookie lifetime in seconds, 0 for session-scoped",
    "cookie_samesite": "Cookie SameSite attribute",
    "cookie_httponly": "Cookie HttpOnly flag",
    "cookie_secure": "Cookie Secure flag",
    "use_cookies": "Whether the identifier travels in a cookie",
    "use_only_cookies": "Whether the identifier may only travel in a cookie",
    "cache_expire": "Cache expiry in minutes for session pages",
    "serialize_handler": "Wire format of stored sessions (php, php_serialize)",
    "gc_probability": "Numerator of the gc probability",
    "gc_divisor": "Denominator of the gc probability",
    "gc_maxlifetime": "Seconds after which stored sessions are garbage",
    "sid_length": "Length of generated session identifiers",
}


def to_ini(value: Any) -> str:
    """Normalize a setting value into its ini string form."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class SessionFileConfig(BaseModel):
    """Schema of the optional YAML defaults file."""

    session: Dict[str, Any] = Field(default_factory=dict)

    @validator("session")
    def keys_must_be_known(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        unknown = sorted(set(v) - set(DEFAULT_SETTINGS))
        if unknown:
            raise ValueError(f"unknown session settings: {', '.join(unknown)}")
        return v


class ConfigProvider(Protocol):
    """Protocol for ambient default providers."""

    def get_ini_defaults(self) -> Dict[str, str]:
        """Get the ambient default value of every recognized setting."""
        ...


class StaticConfigProvider:
    """Provider returning built-in defaults with fixed overrides."""

    def __init__(self, overrides: Optional[Mapping[str, Any]] = None):
        self.overrides = dict(overrides or {})

    def get_ini_defaults(self) -> Dict[str, str]:
        defaults = dict(DEFAULT_SETTINGS)
        defaults.update({key: to_ini(value) for key, value in self.overrides.items()})
        return defaults


class EnvConfigProvider:
    """
    Environment-based defaults provider.

    Layers, lowest precedence first: built-in defaults, the YAML file named
    by SESSION_CONFIG_FILE, then SESSION_<KEY> environment variables.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def _load_file(self) -> Dict[str, Any]:
        path = self.environ.get("SESSION_CONFIG_FILE")
        if not path:
            return {}
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return SessionFileConfig(**data).session

    def get_ini_defaults(self) -> Dict[str, str]:
        """Get ambient defaults from file and environment variables."""
        defaults = dict(DEFAULT_SETTINGS)
        for key, value in self._load_file().items():
            defaults[key] = to_ini(value)
        for key in DEFAULT_SETTINGS:
            env_value = self.environ.get(f"SESSION_{key.upper()}")
            if env_value is not None:
                defaults[key] = env_value
        return defaults

    @staticmethod
    def get_schema() -> Dict[str, Dict[str, str]]:
        """
        Get the recognized settings with their descriptions and defaults.

        Example:
            >>> EnvConfigProvider.get_schema()["name"]["default"]
            'SESSIONID'
        """
        return {
            key: {"description": SETTING_DESCRIPTIONS[key], "default": default}
            for key, default in DEFAULT_SETTINGS.items()
        }
