"""Runtime settings for the Excel quick viewer.

Values come from ``EQV_``-prefixed environment variables or a ``.env`` file in
the working directory; anything unset keeps the default below.

Variables:
    EQV_SETTINGS_PATH: JSON file holding persisted viewer settings
        (default: ~/.excel_quick_viewer/settings.json)
    EQV_SETTINGS_KEY: Storage key of the settings record
        (default: excel-quick-viewer-settings-v1)
    EQV_MAX_COLUMNS: Columns kept per sheet (default: 51)
    EQV_MAX_ROWS: Rows kept per sheet (default: 10001)
    EQV_DEFAULT_COLUMN_WIDTH: Column width in pixels when none is declared
        (default: 80)
    EQV_PIXELS_PER_CHARACTER: Conversion for character-based widths (default: 7.5)
    EQV_SPREADSHEET_EXTENSIONS: Comma-separated catalog extensions
        (default: .xlsx,.xls,.xlsm)
    EQV_LOCK_FILE_PREFIX: Name prefix of editor lock files (default: ~$)
    EQV_LOG_LEVEL: Logging level (default: INFO)
    EQV_DEBUG: Enable debug mode (default: false)
    EQV_CORS_ORIGINS: Comma-separated CORS origins (default: *)
    EQV_SERVER_HOST: Server bind host (default: 127.0.0.1)
    EQV_SERVER_PORT: Server bind port (default: 8765)
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Viewer settings, one field per ``EQV_`` variable.

    For example, in ``.env``:
        EQV_SETTINGS_PATH=/home/me/.config/eqv.json
        EQV_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="EQV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Persistence Settings
    # =========================================================================

    settings_path: str = "~/.excel_quick_viewer/settings.json"
    """JSON key/value file that stores the settings record."""

    settings_key: str = "excel-quick-viewer-settings-v1"
    """Versioned key under which the folder list is stored."""

    # =========================================================================
    # Grid Settings
    # =========================================================================

    max_columns: int = 51
    """Maximum number of columns decoded per sheet (indices 0-50)."""

    max_rows: int = 10001
    """Maximum number of rows decoded per sheet (indices 0-10000)."""

    default_column_width: float = 80.0
    """Column width in pixels when the workbook declares none."""

    pixels_per_character: float = 7.5
    """Pixel width of one character for character-based column widths."""

    # =========================================================================
    # Catalog Settings
    # =========================================================================

    spreadsheet_extensions: str = ".xlsx,.xls,.xlsm"
    """Comma-separated file extensions listed in the catalog."""

    lock_file_prefix: str = "~$"
    """File name prefix of spreadsheet editor lock files."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Root logger level name, case-insensitive."""

    debug: bool = False
    """Enable debug mode with additional error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    cors_origins: str = "*"
    """Origins allowed by CORS, comma-separated; * allows any."""

    server_host: str = "127.0.0.1"
    """Interface uvicorn binds to; loopback by default."""

    server_port: int = 8765
    """TCP port uvicorn listens on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        name = v.upper()
        if name not in _LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {v!r}; expected one of {', '.join(_LOG_LEVELS)}"
            )
        return name

    @field_validator("max_columns", "max_rows")
    @classmethod
    def validate_grid_limit(cls, v: int) -> int:
        """Validate grid limits are positive."""
        if v < 1:
            raise ValueError(f"Grid limits must be at least 1, got {v}")
        return v

    @field_validator("default_column_width", "pixels_per_character")
    @classmethod
    def validate_width(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Widths must be positive, got {v}")
        return v

    @field_validator("spreadsheet_extensions")
    @classmethod
    def validate_extensions(cls, v: str) -> str:
        """Validate every extension starts with a dot."""
        parts = [part.strip() for part in v.split(",") if part.strip()]
        if not parts:
            raise ValueError("spreadsheet_extensions must name at least one extension")
        for part in parts:
            if not part.startswith("."):
                raise ValueError(f"Extension must start with '.', got {part}")
        return ",".join(part.lower() for part in parts)

    @field_validator("lock_file_prefix")
    @classmethod
    def validate_lock_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("lock_file_prefix must be a non-empty string")
        return v

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"server_port out of range: {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def settings_file(self) -> Path:
        """Get the settings file location with ``~`` expanded."""
        return Path(self.settings_path).expanduser()

    @property
    def spreadsheet_extensions_list(self) -> list[str]:
        """Get catalog extensions as a list."""
        return self.spreadsheet_extensions.split(",")

    @property
    def cors_origins_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def log_level_int(self) -> int:
        """Numeric level for ``logging.setLevel``."""
        return logging.getLevelNamesMapping()[self.log_level]

    def to_safe_dict(self) -> dict[str, Any]:
        """All fields as a plain dict; nothing here is secret."""
        return self.model_dump()


def validate_settings_on_startup(s: Settings) -> None:
    """Log the loaded configuration and warn about risky combinations."""
    logger = logging.getLogger(__name__)

    if s.cors_origins == "*" and s.server_host not in {"127.0.0.1", "localhost"}:
        logger.warning(
            "CORS allows all origins while the server listens on a public "
            "interface. Set EQV_CORS_ORIGINS to restrict access."
        )

    if s.max_columns * s.max_rows > 2_000_000:
        logger.warning(
            "Grid limits allow more than two million cells per sheet; "
            "search may become sluggish."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"settings_path={s.settings_path}, "
        f"max_columns={s.max_columns}, max_rows={s.max_rows}"
    )


settings = Settings()
