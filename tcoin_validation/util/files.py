"""
JSON file helpers for deployment artifacts (endpoint ids, addresses).
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

from .logging import logger

PathLike = Union[str, Path]


def load_json_file(path: PathLike) -> Any:
    """Load a JSON file from the given path."""
    file_path = Path(path)
    logger.info(f"Loading file from: {file_path}")
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json_file(data: Dict[str, Any], path: PathLike, mode: str = "w") -> Dict[str, Any]:
    """Write or merge a JSON object into a file.

    Mode ``"a"`` merges ``data`` over the object already stored at ``path``
    (a missing file counts as empty); ``"w"`` overwrites. The parent
    directory must already exist. Returns what was written.
    """
    file_path = Path(path)

    if mode == "a":
        previous = load_json_file(file_path) if file_path.exists() else {}
        if not isinstance(previous, dict):
            raise ValueError(f"Cannot merge into non-object JSON at {file_path}")
    elif mode == "w":
        previous = {}
    else:
        raise ValueError(f"Invalid mode: {mode}")

    merged = {**previous, **data}

    logger.info(f"Writing file to: {file_path}")
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(merged, f, indent=2)
        f.write("\n")
    return merged
