from __future__ import annotations

import logging
from pathlib import Path

from filelock import FileLock
from pydantic import ValidationError

from adapters.filesystem.json_utils import read_document, write_model_atomic
from domain.models import WorkspaceSnapshot
from domain.ports.repositories import WorkspaceRepository

logger = logging.getLogger(__name__)


class FileSystemWorkspaceRepository(WorkspaceRepository):
    """Keeps the whole workspace in a single JSON file next to a lock file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def lock_path(self) -> Path:
        return self.path.with_suffix(f"{self.path.suffix}.lock")

    def load(self) -> WorkspaceSnapshot:
        if not self.path.exists():
            return WorkspaceSnapshot()
        with FileLock(str(self.lock_path)):
            payload = read_document(self.path)
        try:
            return WorkspaceSnapshot.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Workspace file %s failed validation", self.path)
            msg = f"Workspace file {self.path} is invalid: {exc}"
            raise ValueError(msg) from exc

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(str(self.lock_path)):
            write_model_atomic(self.path, snapshot)
