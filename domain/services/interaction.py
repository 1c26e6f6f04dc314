from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Union

from domain.geometry import (
    DEFAULT_FIT_PADDING,
    DEFAULT_GRID_SIZE,
    IDENTITY_VIEWPORT,
    MAX_SCALE,
    MIN_SCALE,
    ZOOM_STEP,
    Viewport,
    fit_to_content,
    pan,
    snap,
    to_model_space,
    visible_center,
    zoom,
    zoom_for_wheel,
)
from domain.models import Diagram, Node, Point, Size
from domain.ports.ids import DEFAULT_ID_FACTORY, IdFactory
from domain.ports.pointer import NoopPointerCapture, PointerCapture, PointerSubscription
from domain.services import entity_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Panning:
    last_screen: Point
    moved: bool = False


@dataclass(frozen=True)
class DraggingNode:
    node_id: str
    grab_offset: Point


@dataclass(frozen=True)
class Connecting:
    kind: str | None
    source_id: str | None = None


InteractionState = Union[Idle, Panning, DraggingNode, Connecting]

DiagramListener = Callable[[Diagram], None]


class CanvasController:
    """Pointer gestures on one editor surface.

    The controller owns the viewport and the current diagram snapshot. Each
    diagram change replaces the snapshot and is reported to ``on_change``.
    Surface-wide move/up listeners are held only while panning or dragging.
    """

    def __init__(
        self,
        diagram: Diagram,
        capture: PointerCapture | None = None,
        viewport: Viewport = IDENTITY_VIEWPORT,
        grid_size: float = DEFAULT_GRID_SIZE,
        zoom_step: float = ZOOM_STEP,
        min_scale: float = MIN_SCALE,
        max_scale: float = MAX_SCALE,
        origin: Point = Point(0.0, 0.0),
        id_factory: IdFactory = DEFAULT_ID_FACTORY,
        on_change: DiagramListener | None = None,
    ) -> None:
        self.diagram = diagram
        self.viewport = viewport
        self.grid_size = grid_size
        self.zoom_step = zoom_step
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.origin = origin
        self.selected_node_id: str | None = None
        self.selected_edge_id: str | None = None
        self._capture = capture or NoopPointerCapture()
        self._id_factory = id_factory
        self._on_change = on_change
        self._state: InteractionState = Idle()
        self._subscription: PointerSubscription | None = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._subscription is not None

    def __enter__(self) -> CanvasController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.teardown()

    def to_model(self, screen: Point) -> Point:
        return to_model_space(screen, self.viewport, self.origin)

    def hit_test(self, screen: Point) -> str | None:
        model = self.to_model(screen)
        # Last node is drawn on top.
        for node in reversed(self.diagram.nodes):
            rect = self.diagram.node_rect(node)
            if rect.x <= model.x <= rect.right and rect.y <= model.y <= rect.bottom:
                return node.id
        return None

    def pointer_down(self, screen: Point, node_id: str | None = None) -> None:
        target = node_id if node_id is not None else self.hit_test(screen)
        if target is not None and self.diagram.node(target) is None:
            target = None

        state = self._state
        if isinstance(state, Connecting):
            if target is None:
                self._clear_selection()
                self._enter(Panning(last_screen=screen))
                return
            if state.source_id is None:
                self._enter(Connecting(kind=state.kind, source_id=target))
                return
            if state.source_id != target:
                self._apply(
                    entity_store.add_edge(
                        self.diagram,
                        state.source_id,
                        target,
                        kind=state.kind,
                        id_factory=self._id_factory,
                    )[0]
                )
            self._enter(Idle())
            return

        if isinstance(state, DraggingNode):
            return

        if target is None:
            self._clear_selection()
            self._enter(Panning(last_screen=screen))
            return

        node = self.diagram.node(target)
        if node is None:
            return
        self.selected_node_id = node.id
        self.selected_edge_id = None
        self._enter(DraggingNode(node_id=node.id, grab_offset=self.to_model(screen) - node.position))

    def pointer_move(self, screen: Point) -> None:
        state = self._state
        if isinstance(state, Panning):
            dx = screen.x - state.last_screen.x
            dy = screen.y - state.last_screen.y
            self.viewport = pan(self.viewport, dx, dy)
            self._state = Panning(last_screen=screen, moved=state.moved or bool(dx or dy))
        elif isinstance(state, DraggingNode):
            position = snap(self.to_model(screen) - state.grab_offset, self.grid_size)
            node = self.diagram.node(state.node_id)
            if node is None:
                self._enter(Idle())
                return
            if node.position != position:
                self._apply(entity_store.move_node(self.diagram, state.node_id, position))

    def pointer_up(self) -> None:
        if isinstance(self._state, (Panning, DraggingNode)):
            self._enter(Idle())

    def toggle_connect_mode(self, kind: str | None = None) -> None:
        if self.selected_edge_id is not None:
            self._apply(entity_store.update_edge(self.diagram, self.selected_edge_id, {"kind": kind}))
            return
        state = self._state
        if isinstance(state, Connecting) and state.kind == kind:
            self._enter(Idle())
            return
        self._enter(Connecting(kind=kind))

    def cancel(self) -> None:
        self._enter(Idle())

    def select_edge(self, edge_id: str) -> None:
        if self.diagram.edge(edge_id) is None:
            return
        self.selected_edge_id = edge_id
        self.selected_node_id = None

    def delete_selection(self) -> None:
        if self.selected_node_id is not None:
            if isinstance(self._state, DraggingNode):
                self._enter(Idle())
            self._apply(entity_store.remove_node(self.diagram, self.selected_node_id))
            self.selected_node_id = None
        elif self.selected_edge_id is not None:
            self._apply(entity_store.remove_edge(self.diagram, self.selected_edge_id))
            self.selected_edge_id = None

    def add_node_at_center(self, kind: str, label: str, viewport_size: Size) -> Node:
        position = snap(visible_center(self.viewport, viewport_size), self.grid_size)
        diagram, node = entity_store.add_node(
            self.diagram, kind, label=label, position=position, id_factory=self._id_factory
        )
        self._apply(diagram)
        self.selected_node_id = node.id
        self.selected_edge_id = None
        return node

    def zoom_in(self) -> None:
        self.viewport = zoom(self.viewport, self.zoom_step, self.min_scale, self.max_scale)

    def zoom_out(self) -> None:
        self.viewport = zoom(self.viewport, -self.zoom_step, self.min_scale, self.max_scale)

    def wheel(self, delta_y: float) -> None:
        self.viewport = zoom_for_wheel(
            self.viewport, delta_y, self.zoom_step, self.min_scale, self.max_scale
        )

    def reset_view(self) -> None:
        self.viewport = IDENTITY_VIEWPORT

    def fit_view(self, viewport_size: Size, padding: float = DEFAULT_FIT_PADDING) -> None:
        self.viewport = fit_to_content(
            self.diagram.nodes,
            viewport_size,
            padding,
            self.diagram.family,
            self.min_scale,
            self.max_scale,
        )

    def replace_diagram(self, diagram: Diagram, viewport_size: Size | None = None) -> None:
        """Swap the whole diagram, e.g. after a generation or a notation lift."""
        self._enter(Idle())
        self._clear_selection()
        self._apply(diagram)
        if viewport_size is None:
            self.reset_view()
        else:
            self.fit_view(viewport_size)

    def teardown(self) -> None:
        self._enter(Idle())

    def _clear_selection(self) -> None:
        self.selected_node_id = None
        self.selected_edge_id = None

    def _apply(self, diagram: Diagram) -> None:
        if diagram is self.diagram:
            return
        self.diagram = diagram
        if self.selected_node_id is not None and diagram.node(self.selected_node_id) is None:
            self.selected_node_id = None
        if self.selected_edge_id is not None and diagram.edge(self.selected_edge_id) is None:
            self.selected_edge_id = None
        if self._on_change is not None:
            self._on_change(diagram)

    def _enter(self, state: InteractionState) -> None:
        self._release()
        self._state = state
        if isinstance(state, (Panning, DraggingNode)):
            self._subscription = self._capture.acquire(self.pointer_move, self.pointer_up)
            logger.debug("Pointer capture acquired for %s", type(state).__name__)

    def _release(self) -> None:
        subscription = self._subscription
        if subscription is None:
            return
        self._subscription = None
        subscription.release()
