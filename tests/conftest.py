"""
Shared pytest fixtures for sessionkit tests.

This module provides common fixtures including:
- RecordingHandler: in-memory handler that exposes what was stored
- Session factories wired to a fixed set of defaults
- Redis/memcached client mocks
"""

import os
import sys
from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sessionkit.config.provider import StaticConfigProvider
from sessionkit.modules.session import Session


# =============================================================================
# Handler Fixtures
# =============================================================================

class RecordingHandler:
    """
    Handler keeping payloads in a dict and recording every call.

    Usage:
        def test_write(session, recording_handler):
            session.set_save_handler(recording_handler).start()
            ...
            assert recording_handler.get_stored("sid") == b'foo|s:3:"bar";'
    """

    def __init__(self, session=None):
        self.session = session
        self.path = None
        self.name: Optional[str] = None
        self.stored: Dict[str, bytes] = {}
        self.calls = []

    def open(self, save_path, session_name):
        self.calls.append(("open", save_path, session_name))
        self.path = save_path
        self.name = session_name
        return True

    def close(self):
        self.calls.append(("close",))
        return True

    def read(self, session_id):
        self.calls.append(("read", session_id))
        return self.stored.get(session_id, b"")

    def write(self, session_id, data):
        self.calls.append(("write", session_id, data))
        self.stored[session_id] = data
        return True

    def destroy(self, session_id):
        self.calls.append(("destroy", session_id))
        self.stored.pop(session_id, None)
        return True

    def gc(self, max_lifetime):
        self.calls.append(("gc", max_lifetime))
        return True

    def get_stored(self, session_id=None):
        if session_id is None:
            return dict(self.stored)
        return self.stored.get(session_id)

    def call_names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def recording_handler():
    """Create a fresh RecordingHandler."""
    return RecordingHandler()


# =============================================================================
# Session Fixtures
# =============================================================================

TEST_DEFAULTS = {
    "save_handler": "files",
    "save_path": "",
    "gc_probability": "0",
}


@pytest.fixture
def provider():
    """Provider with built-in defaults and gc switched off."""
    return StaticConfigProvider(TEST_DEFAULTS)


@pytest.fixture
def make_session(provider):
    """Factory building sessions that share the test defaults."""
    created = []

    def _make(handler=None, path=None, **kwargs):
        kwargs.setdefault("provider", provider)
        s = Session(handler, path, **kwargs)
        created.append(s)
        return s

    yield _make

    for s in created:
        s.release()


@pytest.fixture
def session(make_session):
    """A session without a declared backend."""
    return make_session()


@pytest.fixture
def files_session(make_session, tmp_path):
    """A session using the files backend in a temporary directory."""
    s = make_session()
    s.set_ini({"save_handler": "files", "save_path": str(tmp_path), "use_cookies": 0})
    return s


# =============================================================================
# Client Mocks
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client backed by a dict."""
    store = {}
    client = MagicMock()
    client.get.side_effect = lambda key: store.get(key)
    client.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value)
    client.delete.side_effect = lambda key: store.pop(key, None)
    client.store = store
    return client


@pytest.fixture
def mock_memcached():
    """Create a mock memcached client backed by a dict."""
    store = {}
    client = MagicMock()
    client.get.side_effect = lambda key: store.get(key)
    client.set.side_effect = lambda key, value, expire=0, noreply=None: store.__setitem__(key, value) or True
    client.delete.side_effect = lambda key, noreply=None: store.pop(key, None) is not None
    client.store = store
    return client
