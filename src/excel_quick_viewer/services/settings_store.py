"""Durable storage for the viewer's settings record.

Settings live in a small JSON file that maps storage keys to JSON-encoded
records, so a versioned key can be replaced by a newer one without
touching older records. The viewer's record is ``{"folderPaths": [...]}``.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from excel_quick_viewer.config import settings
from excel_quick_viewer.utils.exceptions import ErrorCode, SettingsIOError
from excel_quick_viewer.utils.logging import get_logger

logger = get_logger(__name__)


class ViewerSettings(BaseModel):
    """The persisted settings record."""

    model_config = ConfigDict(populate_by_name=True)

    folder_paths: list[str] = Field(default_factory=list, alias="folderPaths")


class JsonFileStorage:
    """A string key/value store backed by a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        """Return the stored string for ``key``, or None if absent.

        Raises:
            SettingsIOError: If the file exists but cannot be read or parsed.
        """
        items = self._read_all()
        value = items.get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing the file atomically.

        Raises:
            SettingsIOError: If the file cannot be written.
        """
        try:
            items = self._read_all()
        except SettingsIOError:
            logger.warning("Discarding unreadable settings file", path=str(self.path))
            items = {}
        items[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise SettingsIOError(
                f"Failed to write settings: {e}",
                error_code=ErrorCode.SETTINGS_SAVE_FAILED,
                settings_path=str(self.path),
            ) from e

    def _read_all(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
            items = json.loads(raw) if raw.strip() else {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SettingsIOError(
                f"Failed to read settings: {e}",
                error_code=ErrorCode.SETTINGS_LOAD_FAILED,
                settings_path=str(self.path),
            ) from e
        if not isinstance(items, dict):
            raise SettingsIOError(
                "Settings file does not contain a JSON object",
                error_code=ErrorCode.SETTINGS_LOAD_FAILED,
                settings_path=str(self.path),
            )
        return items


class SettingsStore:
    """Load and save the versioned settings record."""

    def __init__(
        self,
        storage: JsonFileStorage | None = None,
        key: str | None = None,
    ) -> None:
        self.storage = storage or JsonFileStorage(settings.settings_file)
        self.key = key or settings.settings_key

    def load(self) -> ViewerSettings:
        """Read the record; a missing record yields defaults.

        Raises:
            SettingsIOError: If the record exists but is unreadable or malformed.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            return ViewerSettings()
        try:
            return ViewerSettings.model_validate_json(raw)
        except PydanticValidationError as e:
            raise SettingsIOError(
                f"Stored settings are malformed: {e.error_count()} error(s)",
                error_code=ErrorCode.SETTINGS_LOAD_FAILED,
                settings_path=str(self.storage.path),
            ) from e

    def save(self, viewer_settings: ViewerSettings) -> None:
        """Write the record.

        Raises:
            SettingsIOError: If the record cannot be written.
        """
        payload = viewer_settings.model_dump_json(by_alias=True)
        self.storage.set_item(self.key, payload)
