from __future__ import annotations

from pathlib import Path
from typing import Any, List

from pydantic import BaseModel

from adapters.filesystem.json_utils import read_document, write_model_atomic
from domain.models import Diagram, ScopeDiagram


class FileSystemDiagramRepository:
    """Diagrams and scope tables stored as one JSON document per file."""

    def load(self, path: Path) -> Diagram:
        return Diagram.model_validate(read_document(path))

    def load_scope(self, path: Path) -> ScopeDiagram:
        return ScopeDiagram.model_validate(read_document(path))

    def load_raw(self, path: Path) -> dict[str, Any]:
        return read_document(path)

    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, Diagram]]:
        if not directory.exists():
            return []
        return [(path, self.load(path)) for path in sorted(directory.glob("*.json"))]

    def save(self, document: BaseModel, path: Path) -> None:
        write_model_atomic(path, document)
