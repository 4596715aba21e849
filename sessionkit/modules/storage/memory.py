from typing import Dict, Optional


class MemoryHandler:
    """In-process backend. Records the path and name it was opened with."""

    def __init__(self, session=None):
        self.session = session
        self._store: Dict[str, bytes] = {}
        self._path = None
        self._name: Optional[str] = None

    def open(self, save_path, session_name: str) -> bool:
        self._path = save_path
        self._name = session_name
        return True

    def close(self) -> bool:
        return True

    def read(self, session_id: str) -> bytes:
        return self._store.get(session_id, b"")

    def write(self, session_id: str, data: bytes) -> bool:
        self._store[session_id] = data
        return True

    def destroy(self, session_id: str) -> bool:
        self._store.pop(session_id, None)
        return True

    def gc(self, max_lifetime: int) -> bool:
        return True

    def get_path(self):
        return self._path

    def get_name(self) -> Optional[str]:
        return self._name

    def get_stored(self, session_id: Optional[str] = None):
        """Stored payloads, all of them or a single one (None if absent)."""
        if session_id is None:
            return dict(self._store)
        return self._store.get(session_id)
