"""
Session Module - Black Box Interface

Purpose: Manage the per-client session lifecycle
Interface: Session.start(), close(), reset(), abort(), destroy(), regenerate(), release()
Hidden: Backend resolution, boot snapshot restoration, content snapshots

Replaceable storage: any SessionHandler, a well-known tag or a registered name.
"""

from .session import BootBackend, NativeBackend, Resolution, ResolutionState, Session

__all__ = ["Session", "Resolution", "ResolutionState", "NativeBackend", "BootBackend"]
