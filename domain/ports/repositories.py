from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import BpmnDocument, WorkspaceSnapshot


class BpmnRepository(Protocol):
    def load_xml(self, path: Path) -> str: ...

    def save(self, document: BpmnDocument, path: Path) -> None: ...


class WorkspaceRepository(Protocol):
    def load(self) -> WorkspaceSnapshot: ...

    def save(self, snapshot: WorkspaceSnapshot) -> None: ...
