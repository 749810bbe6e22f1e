# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json

from pathlib import Path
from typing import Any

from zkvote.errors import MissingArtifactError


def require_file(path: str | Path, what: str) -> Path:
    """
    Resolve a required artifact path.

    Args:
        path: Location of the artifact.
        what: Human readable description used in the error message.

    Returns:
        The path as a `Path`.

    Raises:
        MissingArtifactError: If nothing exists at `path`. A missing artifact
            is a deployment problem, never a protocol rejection.
    """
    path = Path(path)
    if not path.is_file():
        raise MissingArtifactError(f"missing {what}: {path}")
    return path


def save_json(path: str | Path, data: Any) -> None:
    """
    Serialize data as JSON and write it to a file.

    Parent directories are created when missing and an existing file is
    overwritten. Output uses `indent=2` so written circuit inputs and
    calldata stay readable when inspected by hand.

    Args:
        path: Destination file path (string or `Path`).
        data: Any JSON-serializable value.

    Raises:
        TypeError: If `data` contains non-JSON-serializable objects.
        OSError: If the file cannot be created or written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def load_json(path: str | Path) -> Any:
    """
    Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
