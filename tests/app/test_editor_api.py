from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.config import AppSettings
from app.web_main import create_app
from tests.helpers.diagram_fixtures import diagram_payload, sample_flow_diagram, sample_value_stream


@pytest.fixture
def client(app_settings: AppSettings) -> TestClient:
    return TestClient(create_app(app_settings))


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_export_then_import_restores_flow(client: TestClient) -> None:
    payload = diagram_payload(sample_flow_diagram())

    exported = client.post("/api/bpmn/export", json=payload)
    assert exported.status_code == 200
    body = exported.json()
    assert body["process_id"].startswith("Process_")
    assert "bpmn:definitions" in body["xml"]

    imported = client.post("/api/bpmn/import", json={"xml": body["xml"], "previous": payload})
    assert imported.status_code == 200
    assert imported.json() == payload


def test_import_of_unreadable_xml_returns_empty_diagram(client: TestClient) -> None:
    response = client.post("/api/bpmn/import", json={"xml": "<not-bpmn"})
    assert response.status_code == 200
    body = response.json()
    assert body["family"] == "flow"
    assert body["nodes"] == []
    assert body["edges"] == []


def test_export_rejects_value_stream(client: TestClient) -> None:
    response = client.post("/api/bpmn/export", json=diagram_payload(sample_value_stream()))
    assert response.status_code == 422


def test_export_rejects_invalid_node_kind(client: TestClient) -> None:
    payload = {"family": "flow", "nodes": [{"id": "x", "kind": "supplier"}], "edges": []}
    response = client.post("/api/bpmn/export", json=payload)
    assert response.status_code == 422


def test_lift_scope_to_flow(client: TestClient) -> None:
    scope = {
        "suppliers": ["Acme"],
        "inputs": ["Order"],
        "process": ["Pick", "Pack", "Ship"],
        "outputs": ["Shipment"],
        "customers": ["Buyer"],
    }
    response = client.post("/api/lift/scope-to-flow", json=scope)

    assert response.status_code == 200
    body = response.json()
    assert len(body["nodes"]) == 5
    assert len(body["edges"]) == 4
    assert body["nodes"][0]["label"] == "Input: Order"
    assert body["nodes"][-1]["label"] == "Output: Shipment"


def test_lift_value_stream_to_flow(client: TestClient) -> None:
    response = client.post(
        "/api/lift/value-stream-to-flow", json=diagram_payload(sample_value_stream())
    )
    assert response.status_code == 200
    assert [node["id"] for node in response.json()["nodes"]] == [
        "StartEvent_1",
        "Task_cut",
        "Task_press",
        "EndEvent_1",
    ]


def test_lift_errors(client: TestClient) -> None:
    assert client.post("/api/lift/flow-to-scope", json={}).status_code == 422
    wrong_family = client.post(
        "/api/lift/value-stream-to-flow", json=diagram_payload(sample_flow_diagram())
    )
    assert wrong_family.status_code == 422
    bad_scope = client.post("/api/lift/scope-to-value-stream", json={"process": "not a list"})
    assert bad_scope.status_code == 422


def test_tidy_layout(client: TestClient) -> None:
    response = client.post("/api/layout/tidy", json=diagram_payload(sample_value_stream()))
    assert response.status_code == 200
    positions = {node["id"]: node["position"] for node in response.json()["nodes"]}
    assert positions["cust"] == {"x": 800.0, "y": 100.0}


def test_metrics(client: TestClient) -> None:
    response = client.post(
        "/api/metrics",
        json={
            "value_stream": diagram_payload(sample_value_stream()),
            "flow": diagram_payload(sample_flow_diagram()),
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["metrics"][0] == {
        "name": "Process Health",
        "value": 90.0,
        "unit": "Score",
        "trend": "stable",
        "delta": 0.0,
    }
    assert body["risks"] == {"over_takt": True, "low_efficiency": False, "low_health": False}


def test_route(client: TestClient) -> None:
    response = client.post(
        "/api/route",
        json={
            "source": {"x": 0, "y": 0, "width": 100, "height": 80},
            "target": {"x": 300, "y": 100, "width": 100, "height": 80},
            "kind": "electronic",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["points"] == [
        {"x": 100.0, "y": 40.0},
        {"x": 200.0, "y": 40.0},
        {"x": 200.0, "y": 140.0},
        {"x": 300.0, "y": 140.0},
    ]
    assert body["straight"] is False
    assert body["style"]["pattern"] == "zigzag"


def test_fit(client: TestClient) -> None:
    diagram = {"family": "flow", "nodes": [{"id": "t", "kind": "task"}], "edges": []}
    response = client.post(
        "/api/fit", json={"diagram": diagram, "viewport_width": 200, "viewport_height": 180}
    )
    assert response.status_code == 200
    assert response.json() == {"offset_x": 50.0, "offset_y": 50.0, "scale": 1.0}


def test_workspace_round_trip(client: TestClient, app_settings: AppSettings) -> None:
    empty = client.get("/api/workspace")
    assert empty.status_code == 200
    assert empty.json()["projects"] == []

    snapshot: dict[str, Any] = {
        "projects": [
            {
                "id": "p1",
                "name": "Order to cash",
                "created_at": "2024-05-01T09:30:00Z",
                "updated_at": "2024-05-02T10:00:00Z",
            }
        ],
        "diagrams": {"p1": {"flow": diagram_payload(sample_flow_diagram())}},
        "active_project_id": "p1",
    }
    saved = client.put("/api/workspace", json=snapshot)
    assert saved.status_code == 200
    assert saved.json() == {"projects": 1}
    assert app_settings.storage.workspace_path.exists()

    loaded = client.get("/api/workspace").json()
    assert loaded["active_project_id"] == "p1"
    assert loaded["diagrams"]["p1"]["flow"]["nodes"][1]["label"] == "Review order"


def test_workspace_rejects_unknown_project_diagrams(client: TestClient) -> None:
    response = client.put("/api/workspace", json={"diagrams": {"ghost": {}}})
    assert response.status_code == 422


def test_fit_uses_configured_viewport_and_scale_bounds(
    app_settings_factory: Callable[..., AppSettings],
) -> None:
    settings = app_settings_factory(viewport_width=20.0, viewport_height=18.0, min_scale=0.5)
    client = TestClient(create_app(settings))
    diagram = {"family": "flow", "nodes": [{"id": "t", "kind": "task"}], "edges": []}

    response = client.post("/api/fit", json={"diagram": diagram})

    assert response.status_code == 200
    assert response.json()["scale"] == 0.5


def test_zoom_viewport_uses_configured_step(
    app_settings_factory: Callable[..., AppSettings],
) -> None:
    client = TestClient(create_app(app_settings_factory(zoom_step=0.5, max_scale=2.0)))

    zoomed_in = client.post("/api/viewport/zoom", json={"scale": 1.8, "offset_x": 4})
    assert zoomed_in.json() == {"offset_x": 4.0, "offset_y": 0.0, "scale": 2.0}

    wheel = client.post("/api/viewport/zoom", json={"scale": 1.0, "wheel_delta_y": 120})
    assert wheel.json()["scale"] == 0.5


def test_snap_uses_configured_grid(app_settings_factory: Callable[..., AppSettings]) -> None:
    client = TestClient(create_app(app_settings_factory(grid_size=25.0)))

    response = client.post("/api/snap", json={"x": 12.0, "y": 38.0})

    assert response.json() == {"x": 0.0, "y": 50.0}


def test_export_rejects_edge_kind_from_other_family(client: TestClient) -> None:
    payload = diagram_payload(sample_flow_diagram())
    payload["edges"][0]["kind"] = "push"
    assert client.post("/api/bpmn/export", json=payload).status_code == 422
