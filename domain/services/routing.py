from __future__ import annotations

from dataclasses import dataclass
from itertools import pairwise

from domain.models import CaseEdgeKind, ConnectorKind, Point, Rect

DEFAULT_ALIGN_TOLERANCE = 10.0


@dataclass(frozen=True)
class Route:
    source_port: Point
    target_port: Point
    waypoints: tuple[Point, ...] = ()

    @property
    def points(self) -> list[Point]:
        return [self.source_port, *self.waypoints, self.target_port]

    @property
    def is_straight(self) -> bool:
        return not self.waypoints

    def is_orthogonal(self) -> bool:
        return all(
            start.x == end.x or start.y == end.y for start, end in pairwise(self.points)
        )


@dataclass(frozen=True)
class EdgeStyle:
    pattern: str  # "straight", "zigzag", "striped" or "curved"
    dashed: bool
    stroke_width: float
    marker: str | None


def _horizontal_dominant(source: Rect, target: Rect) -> bool:
    dx = target.center.x - source.center.x
    dy = target.center.y - source.center.y
    return abs(dx) > abs(dy)


def exit_port(source: Rect, target: Rect) -> Point:
    center = source.center
    dx = target.center.x - center.x
    dy = target.center.y - center.y
    if abs(dx) > abs(dy):
        x = center.x + source.half_width if dx > 0 else center.x - source.half_width
        return Point(x, center.y)
    y = center.y + source.half_height if dy > 0 else center.y - source.half_height
    return Point(center.x, y)


def entry_port(source: Rect, target: Rect) -> Point:
    center = target.center
    dx = center.x - source.center.x
    dy = center.y - source.center.y
    if abs(dx) > abs(dy):
        x = center.x - target.half_width if dx > 0 else center.x + target.half_width
        return Point(x, center.y)
    y = center.y - target.half_height if dy > 0 else center.y + target.half_height
    return Point(center.x, y)


def route(source: Rect, target: Rect, tolerance: float = DEFAULT_ALIGN_TOLERANCE) -> Route:
    """Connect two shapes through the sides facing each other.

    Ports sit on the dominant axis between the two centres. The path stays
    straight while the ports line up on the secondary axis within
    ``tolerance``; otherwise it turns once halfway along the dominant axis.
    """
    start = exit_port(source, target)
    end = entry_port(source, target)
    if _horizontal_dominant(source, target):
        if abs(start.y - end.y) <= tolerance:
            return Route(start, end)
        mid_x = start.x + (end.x - start.x) / 2
        return Route(start, end, (Point(mid_x, start.y), Point(mid_x, end.y)))
    if abs(start.x - end.x) <= tolerance:
        return Route(start, end)
    mid_y = start.y + (end.y - start.y) / 2
    return Route(start, end, (Point(start.x, mid_y), Point(end.x, mid_y)))


def route_left_to_right(
    source: Rect, target: Rect, tolerance: float = DEFAULT_ALIGN_TOLERANCE
) -> Route:
    start = Point(source.right, source.y + source.height / 2)
    end = Point(target.x, target.y + target.height / 2)
    if abs(start.y - end.y) <= tolerance:
        return Route(start, end)
    mid_x = start.x + (end.x - start.x) / 2
    return Route(start, end, (Point(mid_x, start.y), Point(mid_x, end.y)))


_EDGE_STYLES: dict[str, EdgeStyle] = {
    ConnectorKind.ELECTRONIC.value: EdgeStyle("zigzag", False, 3.0, "arrow-electronic"),
    ConnectorKind.MANUAL.value: EdgeStyle("straight", False, 3.0, "arrow-manual"),
    ConnectorKind.PUSH.value: EdgeStyle("striped", False, 6.0, "arrow-push"),
    ConnectorKind.PULL.value: EdgeStyle("curved", False, 3.0, "arrow-pull"),
    ConnectorKind.TRANSPORT.value: EdgeStyle("straight", False, 1.5, "arrow-push"),
    CaseEdgeKind.ASSOCIATION.value: EdgeStyle("straight", False, 2.0, "arrow"),
    CaseEdgeKind.DEPENDENCY.value: EdgeStyle("straight", True, 2.0, "arrow"),
}
_SEQUENCE_STYLE = EdgeStyle("straight", False, 1.5, "arrow")


def edge_style(kind: str | None) -> EdgeStyle:
    if kind is None:
        return _SEQUENCE_STYLE
    return _EDGE_STYLES.get(kind, _SEQUENCE_STYLE)
