"""Access to the host machine: reading workbook bytes and opening files."""

from __future__ import annotations

import os
import subprocess
import sys
import threading
from pathlib import Path

from excel_quick_viewer.utils.exceptions import (
    ErrorCode,
    FileReadError,
    ViewerFileNotFoundError,
)
from excel_quick_viewer.utils.logging import get_logger

logger = get_logger(__name__)


def read_file_bytes(path: str | Path) -> bytes:
    """Read the full contents of a file.

    Raises:
        ViewerFileNotFoundError: If nothing exists at ``path``.
        FileReadError: If ``path`` is a directory, is not readable, or the
            read fails for another OS reason.
    """
    file_path = Path(path)
    try:
        return file_path.read_bytes()
    except FileNotFoundError as e:
        raise ViewerFileNotFoundError(str(path)) from e
    except IsADirectoryError as e:
        raise FileReadError(str(path), "path is a directory") from e
    except PermissionError as e:
        raise FileReadError(str(path), "permission denied") from e
    except OSError as e:
        raise FileReadError(str(path), e.strerror or str(e)) from e


def open_externally(path: str | Path) -> bool:
    """Ask the OS to open ``path`` in its default application.

    Failures are logged and reported through the return value.
    """
    target = str(path)
    try:
        if sys.platform.startswith("win"):
            os.startfile(target)  # type: ignore[attr-defined]
        else:
            launcher = "open" if sys.platform == "darwin" else "xdg-open"
            process = subprocess.Popen([launcher, target], start_new_session=True)
            # Reap the launcher so it does not linger as a zombie
            threading.Thread(target=process.wait, daemon=True).start()
    except Exception as e:
        logger.error(
            "Failed to open file externally",
            path=target,
            error=str(e),
            error_code=ErrorCode.OPEN_EXTERNAL_FAILED.value,
        )
        return False

    logger.info("Opened file externally", path=target)
    return True
