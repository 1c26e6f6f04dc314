from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from adapters.bpmn.registry import parse_registry
from adapters.bpmn.repository import FileSystemBpmnRepository
from adapters.filesystem.diagram_repository import FileSystemDiagramRepository
from adapters.layout.value_stream import ValueStreamLayoutEngine
from app.config import load_settings
from domain.models import Diagram, DiagramFamily, ScopeDiagram
from domain.services.convert_bpmn_to_flow import BpmnToFlowConverter
from domain.services.convert_flow_to_bpmn import FlowToBpmnConverter
from domain.services.convert_scope_to_flow import ScopeToFlowConverter
from domain.services.convert_scope_to_value_stream import ScopeToValueStreamConverter
from domain.services.convert_value_stream_to_flow import ValueStreamToFlowConverter
from domain.services.process_metrics import assess_risks, build_dashboard_metrics

app = typer.Typer(no_args_is_help=True)
convert_app = typer.Typer(no_args_is_help=True)
lift_app = typer.Typer(no_args_is_help=True)
app.add_typer(convert_app, name="convert")
app.add_typer(lift_app, name="lift")
console = Console()


class LayoutChoice(str, Enum):
    KEEP = "keep"
    TIDY = "tidy"


@convert_app.command("to-bpmn")
def convert_to_bpmn(
    input_dir: Path = typer.Option(
        Path("data/flow"), help="Directory with flow diagram JSON files.",
    ),
    output_dir: Optional[Path] = typer.Option(
        None, help="Directory to write .bpmn files (defaults to storage.bpmn_out_dir).",
    ),
) -> None:
    settings = load_settings()
    target_dir = output_dir or settings.storage.bpmn_out_dir
    diagram_repo = FileSystemDiagramRepository()
    bpmn_repo = FileSystemBpmnRepository()
    converter = FlowToBpmnConverter(tolerance=settings.editor.route_tolerance)

    try:
        pairs = diagram_repo.load_all_with_paths(input_dir)
    except ValueError as exc:
        console.print(f"[red]Invalid diagram in {input_dir}:[/] {exc}")
        raise typer.Exit(code=1) from exc
    if not pairs:
        console.print(f"[yellow]No diagram files found in {input_dir}[/]")
        raise typer.Exit(code=0)

    for path, diagram in pairs:
        if diagram.family != DiagramFamily.FLOW:
            console.print(f"[yellow]Skipped[/] {path} ({diagram.family.value} diagram)")
            continue
        document = converter.convert(diagram)
        target_path = target_dir / f"{path.stem}.bpmn"
        bpmn_repo.save(document, target_path)
        console.print(f"[green]Wrote[/] {target_path}")


@convert_app.command("from-bpmn")
def convert_from_bpmn(
    input_dir: Optional[Path] = typer.Option(
        None, help="Directory with .bpmn files (defaults to storage.bpmn_in_dir).",
    ),
    output_dir: Path = typer.Option(
        Path("data/flow"), help="Directory to write reconstructed flow diagrams.",
    ),
) -> None:
    settings = load_settings()
    source_dir = input_dir or settings.storage.bpmn_in_dir
    bpmn_repo = FileSystemBpmnRepository()
    diagram_repo = FileSystemDiagramRepository()
    converter = BpmnToFlowConverter()

    pairs = bpmn_repo.load_all_with_paths(source_dir) if source_dir.exists() else []
    if not pairs:
        console.print(f"[yellow]No BPMN files found in {source_dir}[/]")
        raise typer.Exit(code=0)

    for path, xml in pairs:
        target_path = output_dir / f"{path.stem}.json"
        previous = diagram_repo.load(target_path) if target_path.exists() else None
        diagram = converter.convert(parse_registry(xml), previous=previous)
        if not diagram.nodes:
            console.print(f"[yellow]No flow elements recovered from[/] {path}")
        diagram_repo.save(diagram, target_path)
        console.print(f"[green]Wrote[/] {target_path}")


def _load_scope(path: Path) -> ScopeDiagram:
    try:
        return FileSystemDiagramRepository().load_scope(path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read scope diagram {path}:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _load_diagram(path: Path) -> Diagram:
    try:
        return FileSystemDiagramRepository().load(path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read diagram {path}:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _write(diagram: Diagram, output_path: Path) -> None:
    FileSystemDiagramRepository().save(diagram, output_path)
    console.print(
        f"[green]Wrote[/] {output_path} "
        f"({len(diagram.nodes)} nodes, {len(diagram.edges)} edges)"
    )


@lift_app.command("scope-to-value-stream")
def lift_scope_to_value_stream(
    input_path: Path = typer.Argument(..., help="Scope diagram JSON file."),
    output_path: Path = typer.Argument(..., help="Value stream diagram JSON to write."),
    layout: LayoutChoice = typer.Option(LayoutChoice.KEEP, help="Apply the tidy layout."),
) -> None:
    diagram = ScopeToValueStreamConverter().convert(_load_scope(input_path))
    if layout == LayoutChoice.TIDY:
        diagram = ValueStreamLayoutEngine().arrange(diagram)
    _write(diagram, output_path)


@lift_app.command("value-stream-to-flow")
def lift_value_stream_to_flow(
    input_path: Path = typer.Argument(..., help="Value stream diagram JSON file."),
    output_path: Path = typer.Argument(..., help="Flow diagram JSON to write."),
) -> None:
    source = _load_diagram(input_path)
    try:
        diagram = ValueStreamToFlowConverter().convert(source)
    except ValueError as exc:
        console.print(f"[red]Lift failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    _write(diagram, output_path)


@lift_app.command("scope-to-flow")
def lift_scope_to_flow(
    input_path: Path = typer.Argument(..., help="Scope diagram JSON file."),
    output_path: Path = typer.Argument(..., help="Flow diagram JSON to write."),
) -> None:
    _write(ScopeToFlowConverter().convert(_load_scope(input_path)), output_path)


@app.command("metrics")
def metrics(
    value_stream: Optional[Path] = typer.Option(None, help="Value stream diagram JSON file."),
    flow: Optional[Path] = typer.Option(None, help="Flow diagram JSON file."),
) -> None:
    if value_stream is None and flow is None:
        console.print("[red]Provide --value-stream and/or --flow[/]")
        raise typer.Exit(code=1)

    value_stream_diagram = _load_diagram(value_stream) if value_stream else None
    flow_diagram = _load_diagram(flow) if flow else None
    try:
        dashboard = build_dashboard_metrics(value_stream_diagram, flow_diagram)
    except ValueError as exc:
        console.print(f"[red]Cannot compute metrics:[/] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title="Process metrics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_column("Unit")
    for metric in dashboard:
        table.add_row(metric.name, f"{metric.value:g}", metric.unit)
    console.print(table)

    risks = assess_risks(dashboard)
    if risks.over_takt:
        console.print("[red]Risk:[/] designed cycle time exceeds takt time")
    if risks.low_efficiency:
        console.print("[red]Risk:[/] flow efficiency below 40%")
    if risks.low_health:
        console.print("[red]Risk:[/] process health below 60")
    if risks.balanced:
        console.print("[green]Balanced flow[/]")


@app.command("validate")
def validate(input_path: Path = typer.Argument(..., help="Diagram JSON or BPMN file to validate.")) -> None:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)

    if input_path.suffix.lower() in {".bpmn", ".xml"}:
        registry = parse_registry(input_path.read_bytes())
        if not registry:
            console.print(f"[red]Validation failed:[/] no BPMN process found in {input_path}")
            raise typer.Exit(code=1)
        diagram = BpmnToFlowConverter().convert(registry)
        console.print(
            f"[green]Valid BPMN file:[/] {input_path} "
            f"({len(diagram.nodes)} nodes, {len(diagram.edges)} flows)"
        )
        return

    repo = FileSystemDiagramRepository()
    try:
        data = repo.load_raw(input_path)
        if "family" in data or "nodes" in data:
            diagram = Diagram.model_validate(data)
            dangling = len(diagram.edges) - len(diagram.valid_edges())
            console.print(f"[green]Valid {diagram.family.value} diagram:[/] {input_path}")
            if dangling:
                console.print(f"[yellow]{dangling} edge(s) reference missing nodes[/]")
        else:
            ScopeDiagram.model_validate(data)
            console.print(f"[green]Valid scope diagram:[/] {input_path}")
    except Exception as exc:  # noqa: BLE001
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
