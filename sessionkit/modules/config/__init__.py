"""
Config Module - Black Box Interface

Purpose: Session settings with defaults, overrides and a restorable boot snapshot
Interface: SessionConfig.get(), apply(), is_truthy(), lock(), restore()
Hidden: Layer precedence, dirty tracking, ini string normalization

Ambient defaults come from a ConfigProvider (see sessionkit.config.provider).
"""

from .store import RESERVED_KEYS, TRUTHY, SessionConfig

__all__ = ["SessionConfig", "RESERVED_KEYS", "TRUTHY"]
