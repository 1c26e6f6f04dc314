from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from domain.models import EDGE_KINDS, NODE_KINDS, Diagram, Edge, Node, Point, Size, default_payload
from domain.ports.ids import DEFAULT_ID_FACTORY, IdFactory

NODE_ID_PREFIX = "node"
EDGE_ID_PREFIX = "edge"

_IMMUTABLE_NODE_FIELDS = {"id"}
_IMMUTABLE_EDGE_FIELDS = {"id"}


def add_node(
    diagram: Diagram,
    kind: str,
    label: str = "",
    position: Point = Point(0.0, 0.0),
    size: Size | None = None,
    payload: Mapping[str, float] | None = None,
    id_factory: IdFactory = DEFAULT_ID_FACTORY,
) -> tuple[Diagram, Node]:
    node_id = _fresh_id(diagram, NODE_ID_PREFIX, id_factory)
    node = Node(
        id=node_id,
        kind=kind,
        label=label,
        position=position,
        size=size,
        payload=dict(payload) if payload is not None else default_payload(diagram.family),
    )
    return insert_node(diagram, node), node


def insert_node(diagram: Diagram, node: Node) -> Diagram:
    """Append an already-built node; its id must not be taken."""
    if node.id in diagram.node_ids():
        msg = f"Node id already in use: {node.id}"
        raise ValueError(msg)
    _check_kind(diagram, node.kind)
    return diagram.model_copy(update={"nodes": (*diagram.nodes, node)})


def update_node(diagram: Diagram, node_id: str, patch: Mapping[str, Any]) -> Diagram:
    changes = {key: value for key, value in patch.items() if key not in _IMMUTABLE_NODE_FIELDS}
    if not changes:
        return diagram
    replaced = False
    nodes: list[Node] = []
    for node in diagram.nodes:
        if node.id == node_id:
            updated = Node.model_validate({**node.model_dump(), **changes})
            _check_kind(diagram, updated.kind)
            nodes.append(updated)
            replaced = True
        else:
            nodes.append(node)
    if not replaced:
        return diagram
    return diagram.model_copy(update={"nodes": tuple(nodes)})


def move_node(diagram: Diagram, node_id: str, position: Point) -> Diagram:
    return update_node(diagram, node_id, {"position": position})


def remove_node(diagram: Diagram, node_id: str) -> Diagram:
    if diagram.node(node_id) is None:
        return diagram
    nodes = tuple(node for node in diagram.nodes if node.id != node_id)
    edges = tuple(
        edge
        for edge in diagram.edges
        if edge.source_id != node_id and edge.target_id != node_id
    )
    return diagram.model_copy(update={"nodes": nodes, "edges": edges})


def add_edge(
    diagram: Diagram,
    source_id: str,
    target_id: str,
    kind: str | None = None,
    label: str | None = None,
    id_factory: IdFactory = DEFAULT_ID_FACTORY,
) -> tuple[Diagram, Edge | None]:
    if source_id == target_id:
        return diagram, None
    ids = diagram.node_ids()
    if source_id not in ids or target_id not in ids:
        return diagram, None
    _check_edge_kind(diagram, kind)
    edge = Edge(
        id=_fresh_id(diagram, EDGE_ID_PREFIX, id_factory),
        source_id=source_id,
        target_id=target_id,
        kind=kind,
        label=label,
    )
    return diagram.model_copy(update={"edges": (*diagram.edges, edge)}), edge


def update_edge(diagram: Diagram, edge_id: str, patch: Mapping[str, Any]) -> Diagram:
    changes = {key: value for key, value in patch.items() if key not in _IMMUTABLE_EDGE_FIELDS}
    if not changes:
        return diagram
    replaced = False
    edges: list[Edge] = []
    for edge in diagram.edges:
        if edge.id == edge_id:
            updated = Edge.model_validate({**edge.model_dump(), **changes})
            _check_edge_kind(diagram, updated.kind)
            edges.append(updated)
            replaced = True
        else:
            edges.append(edge)
    if not replaced:
        return diagram
    return diagram.model_copy(update={"edges": tuple(edges)})


def remove_edge(diagram: Diagram, edge_id: str) -> Diagram:
    if diagram.edge(edge_id) is None:
        return diagram
    return diagram.model_copy(
        update={"edges": tuple(edge for edge in diagram.edges if edge.id != edge_id)}
    )


def _check_kind(diagram: Diagram, kind: str) -> None:
    if kind not in NODE_KINDS[diagram.family]:
        msg = f"Node kind '{kind}' is not valid for a {diagram.family.value} diagram"
        raise ValueError(msg)


def _check_edge_kind(diagram: Diagram, kind: str | None) -> None:
    if kind is not None and kind not in EDGE_KINDS[diagram.family]:
        msg = f"Edge kind '{kind}' is not valid for a {diagram.family.value} diagram"
        raise ValueError(msg)


def _fresh_id(diagram: Diagram, prefix: str, id_factory: IdFactory) -> str:
    taken = diagram.node_ids() | {edge.id for edge in diagram.edges}
    candidate = id_factory.new_id(prefix)
    while candidate in taken:
        candidate = id_factory.new_id(prefix)
    return candidate
