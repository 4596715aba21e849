"""
Handler Module - Black Box Interface

Purpose: Define the storage capability contract for session backends
Interface: SessionHandler, SaveMethods, CallbackHandler
Hidden: How standalone callables are bridged into a handler

Any object implementing open/close/read/write/destroy/gc is a valid backend.
"""

from .callback import CallbackHandler, SaveMethods
from .interfaces import SessionHandler

__all__ = ["SessionHandler", "SaveMethods", "CallbackHandler"]
