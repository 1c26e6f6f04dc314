from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Literal, Optional, cast

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field, ValidationError

from adapters.bpmn.registry import parse_registry
from adapters.filesystem.workspace_repository import FileSystemWorkspaceRepository
from adapters.layout.value_stream import ValueStreamLayoutEngine
from app.config import AppSettings, load_settings
from domain.geometry import Viewport, fit_to_content, snap, zoom, zoom_for_wheel
from domain.models import Diagram, Point, Rect, ScopeDiagram, Size, WorkspaceSnapshot
from domain.ports.layout import LayoutEngine
from domain.ports.repositories import WorkspaceRepository
from domain.services.convert_bpmn_to_flow import BpmnToFlowConverter
from domain.services.convert_flow_to_bpmn import FlowToBpmnConverter
from domain.services.convert_scope_to_flow import ScopeToFlowConverter
from domain.services.convert_scope_to_value_stream import ScopeToValueStreamConverter
from domain.services.convert_value_stream_to_flow import ValueStreamToFlowConverter
from domain.services.process_metrics import assess_risks, build_dashboard_metrics
from domain.services.routing import edge_style, route

logger = logging.getLogger(__name__)

LiftName = Literal["scope-to-value-stream", "value-stream-to-flow", "scope-to-flow"]


@dataclass(frozen=True)
class EditorContext:
    settings: AppSettings
    workspace_repo: WorkspaceRepository
    to_bpmn: FlowToBpmnConverter
    from_bpmn: BpmnToFlowConverter
    layout: LayoutEngine


class BpmnImportRequest(BaseModel):
    xml: str
    previous: Optional[Diagram] = None


class MetricsRequest(BaseModel):
    value_stream: Optional[Diagram] = None
    flow: Optional[Diagram] = None


class RouteRequest(BaseModel):
    source: Rect
    target: Rect
    kind: Optional[str] = None
    tolerance: Optional[float] = Field(default=None, ge=0)


class FitRequest(BaseModel):
    diagram: Diagram
    viewport_width: Optional[float] = Field(default=None, gt=0)
    viewport_height: Optional[float] = Field(default=None, gt=0)
    padding: Optional[float] = Field(default=None, ge=0)


class ZoomRequest(BaseModel):
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = 1.0
    wheel_delta_y: Optional[float] = None
    direction: Literal["in", "out"] = "in"


class SnapRequest(BaseModel):
    x: float
    y: float


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.web.title, default_response_class=ORJSONResponse)
    if settings.web.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.web.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    context = EditorContext(
        settings=settings,
        workspace_repo=FileSystemWorkspaceRepository(settings.storage.workspace_path),
        to_bpmn=FlowToBpmnConverter(tolerance=settings.editor.route_tolerance),
        from_bpmn=BpmnToFlowConverter(),
        layout=ValueStreamLayoutEngine(),
    )
    app.state.context = context

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/bpmn/export")
    def export_bpmn(diagram: Diagram, request: Request) -> dict[str, str]:
        ctx = get_context(request)
        try:
            document = ctx.to_bpmn.convert(diagram)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"process_id": document.process_id, "xml": document.to_xml()}

    @app.post("/api/bpmn/import")
    def import_bpmn(payload: BpmnImportRequest, request: Request) -> dict[str, Any]:
        ctx = get_context(request)
        registry = parse_registry(payload.xml)
        if not registry:
            logger.warning("BPMN import produced an empty registry")
        diagram = ctx.from_bpmn.convert(registry, previous=payload.previous)
        return diagram.model_dump(mode="json")

    @app.post("/api/lift/{lift}")
    def lift(lift: LiftName, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        try:
            diagram = run_lift(lift, payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=422, detail=exc.errors(include_url=False, include_context=False)
            ) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return diagram.model_dump(mode="json")

    @app.post("/api/layout/tidy")
    def tidy(diagram: Diagram, request: Request) -> dict[str, Any]:
        ctx = get_context(request)
        try:
            arranged = ctx.layout.arrange(diagram)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return arranged.model_dump(mode="json")

    @app.post("/api/metrics")
    def metrics(payload: MetricsRequest) -> dict[str, Any]:
        try:
            dashboard = build_dashboard_metrics(payload.value_stream, payload.flow)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {
            "metrics": [asdict(metric) for metric in dashboard],
            "risks": asdict(assess_risks(dashboard)),
        }

    @app.post("/api/route")
    def route_edge(payload: RouteRequest, request: Request) -> dict[str, Any]:
        ctx = get_context(request)
        tolerance = (
            payload.tolerance
            if payload.tolerance is not None
            else ctx.settings.editor.route_tolerance
        )
        path = route(payload.source, payload.target, tolerance)
        return {
            "points": [asdict(point) for point in path.points],
            "straight": path.is_straight,
            "style": asdict(edge_style(payload.kind)),
        }

    @app.post("/api/fit")
    def fit(payload: FitRequest, request: Request) -> dict[str, float]:
        editor = get_context(request).settings.editor
        padding = payload.padding if payload.padding is not None else editor.fit_padding
        default_size = editor.viewport_size
        viewport = fit_to_content(
            payload.diagram.nodes,
            Size(
                payload.viewport_width or default_size.width,
                payload.viewport_height or default_size.height,
            ),
            padding,
            payload.diagram.family,
            editor.min_scale,
            editor.max_scale,
        )
        return asdict(viewport)

    @app.post("/api/viewport/zoom")
    def zoom_viewport(payload: ZoomRequest, request: Request) -> dict[str, float]:
        editor = get_context(request).settings.editor
        viewport = Viewport(payload.offset_x, payload.offset_y, payload.scale)
        if payload.wheel_delta_y is not None:
            viewport = zoom_for_wheel(
                viewport, payload.wheel_delta_y, editor.zoom_step, editor.min_scale, editor.max_scale
            )
        else:
            step = editor.zoom_step if payload.direction == "in" else -editor.zoom_step
            viewport = zoom(viewport, step, editor.min_scale, editor.max_scale)
        return asdict(viewport)

    @app.post("/api/snap")
    def snap_point(payload: SnapRequest, request: Request) -> dict[str, float]:
        editor = get_context(request).settings.editor
        return asdict(snap(Point(payload.x, payload.y), editor.grid_size))

    @app.get("/api/workspace")
    def load_workspace(request: Request) -> dict[str, Any]:
        ctx = get_context(request)
        try:
            snapshot = ctx.workspace_repo.load()
        except ValueError as exc:
            logger.exception("Failed to load workspace")
            raise HTTPException(status_code=500, detail="Workspace is unreadable") from exc
        return snapshot.model_dump(mode="json")

    @app.put("/api/workspace")
    def save_workspace(snapshot: WorkspaceSnapshot, request: Request) -> dict[str, int]:
        ctx = get_context(request)
        ctx.workspace_repo.save(snapshot)
        return {"projects": len(snapshot.projects)}

    return app


def get_context(request: Request) -> EditorContext:
    return cast(EditorContext, request.app.state.context)


def run_lift(lift: LiftName, payload: dict[str, Any]) -> Diagram:
    if lift == "scope-to-value-stream":
        return ScopeToValueStreamConverter().convert(ScopeDiagram.model_validate(payload))
    if lift == "scope-to-flow":
        return ScopeToFlowConverter().convert(ScopeDiagram.model_validate(payload))
    return ValueStreamToFlowConverter().convert(Diagram.model_validate(payload))


app = create_app(load_settings())
