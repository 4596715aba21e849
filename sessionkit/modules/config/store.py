from typing import Any, Dict, Mapping, Optional, Set

from ...config.provider import to_ini

TRUTHY = {"1", "true", "on", "yes"}

# Keys handled by backend resolution instead of generic storage
RESERVED_KEYS = {
    "backend-identity": "save_handler",
    "save_handler": "save_handler",
    "backend-path": "save_path",
    "save_path": "save_path",
}


class SessionConfig:
    """
    Layered session settings.

    Lookup order is user override, then ini default. A boot snapshot is
    captured once when configuration is locked; every key changed after
    that is tracked as dirty so it can be restored on release.
    """

    def __init__(self, ini_defaults: Mapping[str, Any]):
        self._ini: Dict[str, str] = {key: to_ini(value) for key, value in ini_defaults.items()}
        self._overrides: Dict[str, str] = {}
        self.boot: Optional[Dict[str, Any]] = None
        self.dirty: Set[str] = set()

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._overrides:
            return self._overrides[name]
        return self._ini.get(name, default)

    def get_ini_default(self, name: str, default: Any = None) -> Any:
        return self._ini.get(name, default)

    def is_truthy(self, name: str) -> bool:
        value = self.get(name)
        if value is None:
            return False
        return str(value).strip().lower() in TRUTHY

    def apply(self, name: str, value: Any, lock: bool = False) -> bool:
        """
        Store one non-reserved setting.

        Returns:
            True if the live value changed
        """
        current = self.get(name)
        value = to_ini(value)
        if current == value:
            return False
        self._overrides[name] = value
        if not lock:
            self.dirty.add(name)
            # First change after boot: the boot value was the ini default
            if self.boot is not None and name not in self.boot:
                self.boot[name] = current
        return True

    def restore(self, name: str, value: Any) -> None:
        """Put a setting back to its boot value without marking it dirty."""
        if value is None or to_ini(value) == self._ini.get(name):
            self._overrides.pop(name, None)
        else:
            self._overrides[name] = to_ini(value)

    def lock(self, snapshot: Dict[str, Any]) -> None:
        """Merge values into the boot snapshot, creating it on first lock."""
        if self.boot is None:
            self.boot = {}
        self.boot.update(snapshot)

    def take_dirty(self) -> Set[str]:
        dirty, self.dirty = self.dirty, set()
        return dirty

    def overrides(self) -> Dict[str, str]:
        return dict(self._overrides)
