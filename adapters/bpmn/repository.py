from __future__ import annotations

from pathlib import Path
from typing import List

from domain.models import BpmnDocument
from domain.ports.repositories import BpmnRepository


class FileSystemBpmnRepository(BpmnRepository):
    def load_xml(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, str]]:
        return [(path, self.load_xml(path)) for path in sorted(directory.glob("*.bpmn"))]

    def save(self, document: BpmnDocument, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(f"{path.suffix}.tmp")
        tmp_path.write_text(document.to_xml(), encoding="utf-8")
        tmp_path.replace(path)
