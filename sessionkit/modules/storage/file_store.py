#!/usr/bin/env python3
"""
File backend for sessions.

One `sess_<id>` file per session inside the save directory. The record is
held under an exclusive advisory lock from read() until close(), so two
processes never interleave writes to the same session.
"""

import fcntl
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

FILE_PREFIX = "sess_"
_VALID_ID = re.compile(r"^[A-Za-z0-9,-]+$")


class FileHandler:
    """Storage of session payloads as files in a directory."""

    def __init__(self, session=None):
        self.session = session
        self.directory: Optional[Path] = None
        self._fd: Optional[int] = None
        self._locked_id: Optional[str] = None

    def open(self, save_path, session_name: str) -> bool:
        """
        Select the directory to store sessions in.

        The path may use the "N;dir" or "N;MODE;dir" form, only the last
        segment is used. An empty path selects the system temp directory.
        """
        save_path = str(save_path or "").rsplit(";", 1)[-1]
        directory = Path(save_path or tempfile.gettempdir())
        if not directory.is_dir():
            logger.error(f"Session save path is not a directory: {directory}")
            return False
        self.directory = directory
        return True

    def _record_path(self, session_id: str) -> Optional[Path]:
        if self.directory is None or not _VALID_ID.match(session_id or ""):
            return None
        return self.directory / f"{FILE_PREFIX}{session_id}"

    def _lock(self, session_id: str) -> Optional[int]:
        if self._locked_id == session_id and self._fd is not None:
            return self._fd
        self._release()
        path = self._record_path(session_id)
        if path is None:
            logger.warning("Rejected malformed session id for file storage")
            return None
        try:
            fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o600)
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as e:
            logger.error(f"Failed to lock session file {path}: {e}")
            return None
        self._fd = fd
        self._locked_id = session_id
        return fd

    def _release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            os.close(self._fd)
        except OSError as e:
            logger.warning(f"Failed to release session file lock: {e}")
        self._fd = None
        self._locked_id = None

    def read(self, session_id: str) -> bytes:
        fd = self._lock(session_id)
        if fd is None:
            return b""
        os.lseek(fd, 0, os.SEEK_SET)
        chunks = []
        while True:
            chunk = os.read(fd, 65536)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def write(self, session_id: str, data: bytes) -> bool:
        fd = self._lock(session_id)
        if fd is None:
            return False
        try:
            os.ftruncate(fd, 0)
            os.lseek(fd, 0, os.SEEK_SET)
            view = memoryview(data)
            while view:
                written = os.write(fd, view)
                view = view[written:]
        except OSError as e:
            logger.error(f"Failed to write session file: {e}")
            return False
        return True

    def destroy(self, session_id: str) -> bool:
        path = self._record_path(session_id)
        if path is None:
            return False
        if self._locked_id == session_id:
            self._release()
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to delete session file {path}: {e}")
            return False
        return True

    def close(self) -> bool:
        self._release()
        return True

    def gc(self, max_lifetime: int) -> bool:
        if self.directory is None:
            return False
        cutoff = time.time() - max_lifetime
        removed = 0
        for path in self.directory.glob(f"{FILE_PREFIX}*"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError:
                continue
        if removed:
            logger.info(f"Removed {removed} expired session files from {self.directory}")
        return True
