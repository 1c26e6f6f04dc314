from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel

DOCUMENT_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS


def read_document(path: Path) -> dict[str, Any]:
    """Read a JSON object from ``path``; anything else is a ``ValueError``."""
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        msg = f"{path} is not valid JSON: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must hold a JSON object, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def write_model_atomic(path: Path, model: BaseModel) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(orjson.dumps(model.model_dump(mode="json"), option=DOCUMENT_OPTIONS))
    tmp_path.replace(path)
