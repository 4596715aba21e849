"""Storage handler interfaces following Black Box Design principles."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionHandler(Protocol):
    """
    Capability contract every session storage backend satisfies.

    Handlers signal failure by returning False, never by raising.
    """

    def open(self, save_path: str, session_name: str) -> bool:
        """
        Prepare the backend for one start/close cycle.

        Args:
            save_path: Backend path or address data
            session_name: Cookie name of the session

        Returns:
            True on success
        """
        ...

    def close(self) -> bool:
        """Release resources acquired by open()."""
        ...

    def read(self, session_id: str) -> bytes:
        """
        Read the stored payload.

        Returns:
            Stored bytes, or b"" when nothing is stored for the id
        """
        ...

    def write(self, session_id: str, data: bytes) -> bool:
        """Replace the stored payload for the id."""
        ...

    def destroy(self, session_id: str) -> bool:
        """Remove the stored payload, no-op if absent."""
        ...

    def gc(self, max_lifetime: int) -> bool:
        """Remove entries older than max_lifetime seconds."""
        ...
