from __future__ import annotations

from typing import List, Optional

from domain.models import (
    DEFAULT_AVAILABLE_TIME,
    DEFAULT_CUSTOMER_DEMAND,
    DEFAULT_STEP_DATA,
    ConnectorKind,
    Diagram,
    DiagramFamily,
    Edge,
    Node,
    Point,
    ScopeDiagram,
    ValueStreamRole,
)
from domain.ports.ids import DEFAULT_ID_FACTORY, IdFactory

TOP_Y = 100.0
PROCESS_Y = 400.0
START_X = 100.0
PROCESS_SPACING_X = 200.0
CONTROL_X = 450.0
MIN_CUSTOMER_X = 800.0


class ScopeToValueStreamConverter:
    """Skeleton value stream from a scope diagram.

    One supplier and one customer (the first of each column), a production
    control box, and a push-connected chain of process steps that ships to
    the customer.
    """

    def __init__(self, id_factory: IdFactory = DEFAULT_ID_FACTORY) -> None:
        self.id_factory = id_factory

    def convert(self, scope: ScopeDiagram) -> Diagram:
        nodes: List[Node] = [
            self._build_step(
                ValueStreamRole.SUPPLIER, scope.suppliers[0] if scope.suppliers else "Supplier",
                Point(START_X, TOP_Y),
            ),
            self._build_step(
                ValueStreamRole.PRODUCTION_CONTROL, "Production Control", Point(CONTROL_X, TOP_Y)
            ),
        ]
        edges: List[Edge] = []

        x = START_X
        previous: Optional[Node] = None
        for name in scope.process or ["Process Step 1"]:
            step = self._build_step(ValueStreamRole.PROCESS, name, Point(x, PROCESS_Y))
            nodes.append(step)
            if previous is not None:
                edges.append(self._build_connector(previous, step, ConnectorKind.PUSH))
            previous = step
            x += PROCESS_SPACING_X

        customer = self._build_step(
            ValueStreamRole.CUSTOMER,
            scope.customers[0] if scope.customers else "Customer",
            Point(max(x, MIN_CUSTOMER_X), TOP_Y),
        )
        nodes.append(customer)
        if previous is not None:
            edges.append(self._build_connector(previous, customer, ConnectorKind.TRANSPORT))

        return Diagram(
            family=DiagramFamily.VALUE_STREAM,
            nodes=tuple(nodes),
            edges=tuple(edges),
            attributes={
                "customer_demand": DEFAULT_CUSTOMER_DEMAND,
                "available_time": DEFAULT_AVAILABLE_TIME,
            },
        )

    def _build_step(self, role: ValueStreamRole, name: str, position: Point) -> Node:
        return Node(
            id=self.id_factory.new_id(role.value),
            kind=role.value,
            label=name,
            position=position,
            payload=dict(DEFAULT_STEP_DATA),
        )

    def _build_connector(self, source: Node, target: Node, kind: ConnectorKind) -> Edge:
        return Edge(
            id=self.id_factory.new_id("connector"),
            source_id=source.id,
            target_id=target.id,
            kind=kind.value,
        )
