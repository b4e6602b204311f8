from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def write_document(data: dict[str, Any], path: Path, indent: int = 2) -> Path:
    """Replace `path` with pretty-printed JSON; the old file survives a failed write."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=indent, ensure_ascii=False)
    handle, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(payload)
            stream.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path
