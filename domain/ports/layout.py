from __future__ import annotations

from typing import Protocol

from domain.models import Diagram


class LayoutEngine(Protocol):
    def arrange(self, diagram: Diagram) -> Diagram:
        ...
