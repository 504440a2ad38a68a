"""The user's list of watched folders."""

from __future__ import annotations

from collections.abc import Callable

from excel_quick_viewer.services.settings_store import SettingsStore, ViewerSettings
from excel_quick_viewer.utils.exceptions import SettingsIOError
from excel_quick_viewer.utils.logging import get_logger

logger = get_logger(__name__)

RegistryListener = Callable[[list[str]], None]


class FolderRegistry:
    """Ordered, duplicate-free folder paths persisted after every change.

    The in-memory list is authoritative for the running session: a failed
    save is logged and the change is kept.
    """

    def __init__(self, store: SettingsStore | None = None) -> None:
        self._store = store or SettingsStore()
        self._folder_paths: list[str] = []
        self._listeners: list[RegistryListener] = []

    @property
    def folder_paths(self) -> list[str]:
        return list(self._folder_paths)

    def __contains__(self, path: object) -> bool:
        return path in self._folder_paths

    def __len__(self) -> int:
        return len(self._folder_paths)

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """Register a listener called with the new folder list after each change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self) -> list[str]:
        """Load the persisted folder list; unreadable settings yield an empty list."""
        try:
            stored = self._store.load()
        except SettingsIOError as e:
            logger.error(
                "Failed to load settings",
                error=e.message,
                error_code=e.error_code.value,
            )
            stored = ViewerSettings()

        # Stored lists written by hand may contain repeats
        self._folder_paths = list(dict.fromkeys(stored.folder_paths))
        logger.info("Folder registry loaded", folders=len(self._folder_paths))
        return self.folder_paths

    def add(self, path: str) -> bool:
        """Append ``path`` unless already registered. Returns True if added."""
        if path in self._folder_paths:
            return False
        self._folder_paths.append(path)
        logger.info("Folder added", folder=path)
        self._changed()
        return True

    def remove(self, path: str) -> bool:
        """Remove every entry equal to ``path``. Returns True if any was removed."""
        remaining = [p for p in self._folder_paths if p != path]
        if len(remaining) == len(self._folder_paths):
            return False
        self._folder_paths = remaining
        logger.info("Folder removed", folder=path)
        self._changed()
        return True

    def _changed(self) -> None:
        self._save()
        for listener in list(self._listeners):
            listener(self.folder_paths)

    def _save(self) -> None:
        try:
            self._store.save(ViewerSettings(folder_paths=self._folder_paths))
        except SettingsIOError as e:
            logger.error(
                "Failed to save settings",
                error=e.message,
                error_code=e.error_code.value,
            )
