"""Lenient JSON reads and atomic JSON writes for settings files."""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing brace or bracket."""
    return _TRAILING_COMMA.sub(r"\1", text)


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object from disk. Returns {} if the file doesn't exist.

    Hand-edited files often carry trailing commas, so those are stripped
    before parsing. Anything else malformed raises json.JSONDecodeError.
    """
    if not path.exists():
        return {}
    data = json.loads(strip_trailing_commas(path.read_text(encoding="utf-8")))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write data as JSON, replacing the file atomically.

    The content goes to a temp file in the same directory which is then
    renamed over the target, so readers never see a half-written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(json.dumps(data, indent=2) + "\n")
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
