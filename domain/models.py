from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

METADATA_SCHEMA_VERSION = "1.0"


class DiagramFamily(str, Enum):
    FLOW = "flow"
    VALUE_STREAM = "value_stream"
    CASE = "case"


class FlowNodeKind(str, Enum):
    START = "start"
    TASK = "task"
    GATEWAY = "gateway"
    END = "end"


class ValueStreamRole(str, Enum):
    SUPPLIER = "supplier"
    CUSTOMER = "customer"
    PROCESS = "process"
    INVENTORY = "inventory"
    PRODUCTION_CONTROL = "production-control"
    TRANSPORT = "transport"
    KAIZEN = "kaizen"


class CaseNodeKind(str, Enum):
    STAGE = "stage"
    TASK = "task"
    MILESTONE = "milestone"
    EVENT = "event"


class ConnectorKind(str, Enum):
    PUSH = "push"
    PULL = "pull"
    MANUAL = "manual"
    ELECTRONIC = "electronic"
    TRANSPORT = "transport"


class CaseEdgeKind(str, Enum):
    ASSOCIATION = "association"
    DEPENDENCY = "dependency"


NODE_KINDS: Dict[DiagramFamily, Set[str]] = {
    DiagramFamily.FLOW: {kind.value for kind in FlowNodeKind},
    DiagramFamily.VALUE_STREAM: {role.value for role in ValueStreamRole},
    DiagramFamily.CASE: {kind.value for kind in CaseNodeKind},
}

EDGE_KINDS: Dict[DiagramFamily, Set[str]] = {
    DiagramFamily.FLOW: set(),
    DiagramFamily.VALUE_STREAM: {kind.value for kind in ConnectorKind},
    DiagramFamily.CASE: {kind.value for kind in CaseEdgeKind},
}

# Cycle and waiting time in minutes.
DEFAULT_FLOW_METRICS: Dict[str, float] = {
    "cycle_time": 0.0,
    "waiting_time": 0.0,
    "cost": 0.0,
    "error_rate": 0.0,
    "changeover_time": 0.0,
    "uptime": 100.0,
}

# Cycle time in seconds.
DEFAULT_STEP_DATA: Dict[str, float] = {
    "cycle_time": 0.0,
    "changeover_time": 0.0,
    "uptime": 100.0,
    "inventory_count": 0.0,
    "lead_time": 0.0,
}

DEFAULT_CUSTOMER_DEMAND = 100.0
DEFAULT_AVAILABLE_TIME = 27000.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_height(self) -> float:
        return self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


DEFAULT_NODE_SIZES: Dict[DiagramFamily, Dict[str, Size]] = {
    DiagramFamily.FLOW: {
        FlowNodeKind.START.value: Size(36, 36),
        FlowNodeKind.END.value: Size(36, 36),
        FlowNodeKind.GATEWAY.value: Size(50, 50),
        FlowNodeKind.TASK.value: Size(100, 80),
    },
    DiagramFamily.VALUE_STREAM: {
        ValueStreamRole.PROCESS.value: Size(120, 60),
        ValueStreamRole.SUPPLIER.value: Size(90, 45),
        ValueStreamRole.CUSTOMER.value: Size(90, 45),
        ValueStreamRole.PRODUCTION_CONTROL.value: Size(120, 40),
        ValueStreamRole.INVENTORY.value: Size(30, 30),
        ValueStreamRole.KAIZEN.value: Size(50, 50),
        ValueStreamRole.TRANSPORT.value: Size(40, 40),
    },
    DiagramFamily.CASE: {
        CaseNodeKind.STAGE.value: Size(220, 160),
        CaseNodeKind.MILESTONE.value: Size(160, 40),
        CaseNodeKind.EVENT.value: Size(50, 50),
        CaseNodeKind.TASK.value: Size(140, 60),
    },
}

FALLBACK_NODE_SIZE = Size(60, 60)


def default_size(family: DiagramFamily, kind: str) -> Size:
    return DEFAULT_NODE_SIZES.get(family, {}).get(kind, FALLBACK_NODE_SIZE)


def default_payload(family: DiagramFamily) -> Dict[str, float]:
    if family == DiagramFamily.FLOW:
        return dict(DEFAULT_FLOW_METRICS)
    if family == DiagramFamily.VALUE_STREAM:
        return dict(DEFAULT_STEP_DATA)
    return {}


class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    kind: str
    label: str = ""
    position: Point = Point(0.0, 0.0)
    size: Optional[Size] = None
    payload: Dict[str, float] = Field(default_factory=dict)

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    def effective_size(self, family: DiagramFamily) -> Size:
        return self.size or default_size(family, self.kind)

    def rect(self, family: DiagramFamily) -> Rect:
        size = self.effective_size(family)
        return Rect(self.position.x, self.position.y, size.width, size.height)

    def metric(self, name: str, default: float = 0.0) -> float:
        value = self.payload.get(name)
        return default if value is None else float(value)


class Edge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    source_id: str
    target_id: str
    label: Optional[str] = None
    kind: Optional[str] = None


class Diagram(BaseModel):
    model_config = ConfigDict(frozen=True)

    family: DiagramFamily = DiagramFamily.FLOW
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    attributes: Dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def ensure_known_kinds(self) -> Diagram:
        allowed = NODE_KINDS[self.family]
        seen: Set[str] = set()
        for node in self.nodes:
            if node.kind not in allowed:
                msg = f"Node kind '{node.kind}' is not valid for a {self.family.value} diagram"
                raise ValueError(msg)
            if node.id in seen:
                msg = f"Duplicate node id found: {node.id}"
                raise ValueError(msg)
            seen.add(node.id)
        allowed_edges = EDGE_KINDS[self.family]
        for edge in self.edges:
            if edge.kind is not None and edge.kind not in allowed_edges:
                msg = f"Edge kind '{edge.kind}' is not valid for a {self.family.value} diagram"
                raise ValueError(msg)
        return self

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def valid_edges(self) -> List[Edge]:
        ids = self.node_ids()
        return [edge for edge in self.edges if edge.source_id in ids and edge.target_id in ids]

    def node_rect(self, node: Node) -> Rect:
        return node.rect(self.family)


def empty_diagram(family: DiagramFamily = DiagramFamily.FLOW) -> Diagram:
    return Diagram(family=family)


class ScopeDiagram(BaseModel):
    """Supplier / input / process / output / customer boundary columns."""

    model_config = ConfigDict(frozen=True)

    suppliers: List[str] = Field(default_factory=list)
    inputs: List[str] = Field(default_factory=list)
    process: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)
    customers: List[str] = Field(default_factory=list)

    @field_validator("suppliers", "inputs", "process", "outputs", "customers", mode="after")
    @classmethod
    def strip_blank_entries(cls, values: List[str]) -> List[str]:
        return [value.strip() for value in values if value and value.strip()]


DEFAULT_ROOT_CAUSE_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("c1", "People"),
    ("c2", "Process"),
    ("c3", "Equipment"),
    ("c4", "Materials"),
    ("c5", "Environment"),
    ("c6", "Management"),
)


class RootCauseCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    causes: Tuple[str, ...] = ()


def _default_categories() -> Tuple[RootCauseCategory, ...]:
    return tuple(
        RootCauseCategory(id=category_id, name=name)
        for category_id, name in DEFAULT_ROOT_CAUSE_CATEGORIES
    )


class RootCauseDiagram(BaseModel):
    model_config = ConfigDict(frozen=True)

    problem_statement: str = ""
    categories: Tuple[RootCauseCategory, ...] = Field(default_factory=_default_categories)
    root_cause: str = ""
    action_plan: str = ""

    @field_validator("categories", mode="after")
    @classmethod
    def ensure_unique_category_ids(
        cls, categories: Tuple[RootCauseCategory, ...]
    ) -> Tuple[RootCauseCategory, ...]:
        seen: Set[str] = set()
        for category in categories:
            if category.id in seen:
                msg = f"Duplicate category id found: {category.id}"
                raise ValueError(msg)
            seen.add(category.id)
        return categories


@dataclass(frozen=True)
class BpmnDocument:
    process_id: str
    xml: str

    def to_xml(self) -> str:
        return self.xml


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    created_at: datetime
    updated_at: datetime


class ProjectDiagrams(BaseModel):
    model_config = ConfigDict(frozen=True)

    flow: Diagram = Field(default_factory=lambda: empty_diagram(DiagramFamily.FLOW))
    value_stream: Diagram = Field(
        default_factory=lambda: empty_diagram(DiagramFamily.VALUE_STREAM)
    )
    case: Diagram = Field(default_factory=lambda: empty_diagram(DiagramFamily.CASE))
    scope: ScopeDiagram = Field(default_factory=ScopeDiagram)
    root_cause: RootCauseDiagram = Field(default_factory=RootCauseDiagram)

    @model_validator(mode="after")
    def ensure_families(self) -> ProjectDiagrams:
        expected = {
            "flow": DiagramFamily.FLOW,
            "value_stream": DiagramFamily.VALUE_STREAM,
            "case": DiagramFamily.CASE,
        }
        for field_name, family in expected.items():
            diagram: Diagram = getattr(self, field_name)
            if diagram.family != family:
                msg = f"Diagram stored as {field_name} has family {diagram.family.value}"
                raise ValueError(msg)
        return self


class WorkspaceSnapshot(BaseModel):
    """Everything the editor persists, stored as one opaque blob."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = METADATA_SCHEMA_VERSION
    projects: Tuple[Project, ...] = ()
    diagrams: Dict[str, ProjectDiagrams] = Field(default_factory=dict)
    active_project_id: Optional[str] = None

    @model_validator(mode="after")
    def ensure_project_links(self) -> WorkspaceSnapshot:
        project_ids = {project.id for project in self.projects}
        if len(project_ids) != len(self.projects):
            msg = "Duplicate project id found in workspace"
            raise ValueError(msg)
        unknown = sorted(set(self.diagrams) - project_ids)
        if unknown:
            msg = f"Diagrams stored for unknown projects: {', '.join(unknown)}"
            raise ValueError(msg)
        if self.active_project_id is not None and self.active_project_id not in project_ids:
            msg = f"Active project {self.active_project_id} does not exist"
            raise ValueError(msg)
        return self

    def project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def diagrams_for(self, project_id: str) -> ProjectDiagrams:
        return self.diagrams.get(project_id) or ProjectDiagrams()
