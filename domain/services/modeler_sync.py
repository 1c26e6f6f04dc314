from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Optional, Tuple

from domain.models import Diagram, DiagramFamily, empty_diagram
from domain.ports.modeler import RegistryElement
from domain.services.convert_bpmn_to_flow import BpmnToFlowConverter
from domain.services.convert_flow_to_bpmn import FlowToBpmnConverter

logger = logging.getLogger(__name__)

WireNode = Tuple[str, str, str, float, float]
WireEdge = Tuple[str, str, str, Optional[str]]


class SyncPhase(str, Enum):
    IN_SYNC = "in_sync"
    LOCAL_EDIT_PENDING = "local_edit_pending"
    EXTERNAL_IMPORT_PENDING = "external_import_pending"
    FAILED = "failed"


def wire_projection(diagram: Diagram) -> Tuple[Tuple[WireNode, ...], Tuple[WireEdge, ...]]:
    """The part of a flow diagram that survives a trip through BPMN."""
    nodes = tuple(
        (node.id, node.kind, node.label, node.x, node.y) for node in diagram.nodes
    )
    edges = tuple(
        (edge.id, edge.source_id, edge.target_id, edge.label or None)
        for edge in diagram.valid_edges()
    )
    return nodes, edges


class ModelerSync:
    """Keeps a flow diagram and an external BPMN modeling widget consistent.

    Local edits are exported and pushed to the widget; the widget reports
    every import with a "content changed" notification, so the first change
    after a push is the echo of that push and is acknowledged without a
    re-import. Edits that only touch metrics never reach the widget because
    BPMN does not carry them. A failed widget import parks the session in
    ``FAILED`` until ``reload()`` pushes the current diagram again.
    """

    def __init__(
        self,
        diagram: Optional[Diagram] = None,
        exporter: Optional[FlowToBpmnConverter] = None,
        importer: Optional[BpmnToFlowConverter] = None,
    ) -> None:
        self.diagram = diagram or empty_diagram(DiagramFamily.FLOW)
        self.phase = SyncPhase.IN_SYNC
        self.error: Optional[str] = None
        self._exporter = exporter or FlowToBpmnConverter()
        self._importer = importer or BpmnToFlowConverter()
        self._pushed = wire_projection(self.diagram)
        self._pending_import: Optional[Diagram] = None

    def local_edit(self, diagram: Diagram) -> Optional[str]:
        """Record a local change; returns XML to push to the widget, if any."""
        if self.phase == SyncPhase.EXTERNAL_IMPORT_PENDING and diagram == self._pending_import:
            self._commit(diagram)
            return None
        self.diagram = diagram
        if self.phase == SyncPhase.FAILED:
            return None
        if wire_projection(diagram) == self._pushed:
            return None
        return self._push()

    def widget_loaded(self) -> None:
        if self.phase == SyncPhase.LOCAL_EDIT_PENDING:
            self.phase = SyncPhase.IN_SYNC

    def widget_changed(self, elements: Iterable[RegistryElement]) -> Optional[Diagram]:
        """Handle the widget's change notification.

        Returns the imported diagram when the widget holds a genuine external
        change that the editor should adopt.
        """
        if self.phase == SyncPhase.LOCAL_EDIT_PENDING:
            self.phase = SyncPhase.IN_SYNC
            return None
        if self.phase == SyncPhase.FAILED:
            return None
        imported = self._importer.convert(elements, previous=self.diagram)
        if wire_projection(imported) == wire_projection(self.diagram):
            return None
        self._pending_import = imported
        self._pushed = wire_projection(imported)
        self.phase = SyncPhase.EXTERNAL_IMPORT_PENDING
        return imported

    def widget_failed(self, message: str) -> None:
        logger.warning("Modeler failed to import diagram: %s", message)
        self.phase = SyncPhase.FAILED
        self.error = message
        self._pending_import = None

    def reload(self) -> str:
        self.error = None
        return self._push()

    def _push(self) -> str:
        document = self._exporter.convert(self.diagram)
        self._pushed = wire_projection(self.diagram)
        self._pending_import = None
        self.phase = SyncPhase.LOCAL_EDIT_PENDING
        return document.to_xml()

    def _commit(self, diagram: Diagram) -> None:
        self.diagram = diagram
        self._pending_import = None
        self.phase = SyncPhase.IN_SYNC
