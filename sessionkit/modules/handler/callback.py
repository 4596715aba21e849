from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class SaveMethods:
    """Six standalone operations that together form a storage backend."""

    open: Callable[[Any, str], bool]
    close: Callable[[], bool]
    read: Callable[[str], bytes]
    write: Callable[[str, bytes], bool]
    destroy: Callable[[str], bool]
    gc: Callable[[int], bool]


class CallbackHandler:
    """
    Handler that forwards every call to a SaveMethods record.

    open() does not trust the path it is given: the owning session may
    have changed its save path after this handler was bound, so the path
    is always fetched from the session itself.
    """

    def __init__(self, session, methods: SaveMethods):
        self.session = session
        self.methods = methods

    def open(self, save_path, session_name: str) -> bool:
        return self.methods.open(self.session.get_save_path(), session_name)

    def close(self) -> bool:
        return self.methods.close()

    def read(self, session_id: str) -> bytes:
        return self.methods.read(session_id)

    def write(self, session_id: str, data: bytes) -> bool:
        return self.methods.write(session_id, data)

    def destroy(self, session_id: str) -> bool:
        return self.methods.destroy(session_id)

    def gc(self, max_lifetime: int) -> bool:
        return self.methods.gc(max_lifetime)
