"""JSON file persistence with atomic replace."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from structlog import get_logger

from hemis_bot.core.errors import PersistenceError

logger = get_logger()


def read_json(path: Path) -> Any:
    """
    Read and decode a JSON document.

    Args:
        path: File to read

    Returns:
        Decoded JSON value

    Raises:
        PersistenceError: If the file is missing, unreadable or not valid JSON
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise PersistenceError(f"{path.name} not found", context={"path": str(path)}) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PersistenceError(
            f"{path.name} is unreadable: {e}", context={"path": str(path)}
        ) from e


def load_json_safe(path: Path, fallback: Any) -> Any:
    """Read a JSON document, returning `fallback` when it is missing or corrupt."""
    try:
        return read_json(path)
    except PersistenceError as e:
        if path.exists():
            logger.warning("json_file_unreadable", path=str(path), error=e.message)
        return fallback


def save_json_atomic(path: Path, data: Any) -> None:
    """
    Write a JSON document so readers never observe a partial file.

    The payload goes to a temporary file in the same directory, which is then
    renamed over the target with os.replace.

    Args:
        path: Target file
        data: JSON-serializable value

    Raises:
        PersistenceError: If the file cannot be written
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(
            f"Failed to write {path.name}: {e}", context={"path": str(path)}
        ) from e
