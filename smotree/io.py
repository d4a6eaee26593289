"""
smotree.io - JSON and text file helpers with atomic writes.

Used by the JSON project store and by the export commands. Text is always
UTF-8 without a BOM, and line endings are written exactly as given.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any


def _atomic_write(path: Path, content: str) -> None:
    """Write content to a sibling temp file, then rename it over path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(content)
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)


def read_json(path: Path) -> Any:
    """Read a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON atomically with pretty formatting and a trailing newline."""
    _atomic_write(path, json.dumps(data, indent=indent, ensure_ascii=False) + "\n")


def read_text(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_text(path: Path, content: str) -> None:
    """Write a text file atomically, without newline translation."""
    _atomic_write(path, content)
