from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from domain.models import DiagramFamily, Node, Point, Rect, Size

MIN_SCALE = 0.2
MAX_SCALE = 3.0
ZOOM_STEP = 0.1
DEFAULT_GRID_SIZE = 10.0
DEFAULT_FIT_PADDING = 50.0


@dataclass(frozen=True)
class Viewport:
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "scale", clamp_scale(self.scale))

    @property
    def offset(self) -> Point:
        return Point(self.offset_x, self.offset_y)


def clamp_scale(scale: float, min_scale: float = MIN_SCALE, max_scale: float = MAX_SCALE) -> float:
    return max(min_scale, min(max_scale, scale))


IDENTITY_VIEWPORT = Viewport()


def to_model_space(screen: Point, viewport: Viewport, origin: Point = Point(0.0, 0.0)) -> Point:
    """Invert the render transform ``translate(offset) * scale(scale)``.

    ``origin`` is the top-left corner of the drawing surface in screen
    coordinates (the client rect of the canvas).
    """
    return Point(
        (screen.x - origin.x - viewport.offset_x) / viewport.scale,
        (screen.y - origin.y - viewport.offset_y) / viewport.scale,
    )


def to_screen_space(model: Point, viewport: Viewport, origin: Point = Point(0.0, 0.0)) -> Point:
    return Point(
        model.x * viewport.scale + viewport.offset_x + origin.x,
        model.y * viewport.scale + viewport.offset_y + origin.y,
    )


def snap(point: Point, grid_size: float = DEFAULT_GRID_SIZE) -> Point:
    if grid_size <= 0:
        return point
    return Point(
        round(point.x / grid_size) * grid_size,
        round(point.y / grid_size) * grid_size,
    )


def zoom(
    viewport: Viewport,
    delta: float,
    min_scale: float = MIN_SCALE,
    max_scale: float = MAX_SCALE,
) -> Viewport:
    return replace(viewport, scale=clamp_scale(viewport.scale + delta, min_scale, max_scale))


def zoom_for_wheel(
    viewport: Viewport,
    wheel_delta_y: float,
    step: float = ZOOM_STEP,
    min_scale: float = MIN_SCALE,
    max_scale: float = MAX_SCALE,
) -> Viewport:
    # Scrolling down zooms out.
    delta = -step if wheel_delta_y > 0 else step
    return zoom(viewport, delta, min_scale, max_scale)


def pan(viewport: Viewport, dx: float, dy: float) -> Viewport:
    return replace(viewport, offset_x=viewport.offset_x + dx, offset_y=viewport.offset_y + dy)


def bounding_box(nodes: Iterable[Node], family: DiagramFamily) -> Rect | None:
    rects = [node.rect(family) for node in nodes]
    if not rects:
        return None
    min_x = min(rect.x for rect in rects)
    min_y = min(rect.y for rect in rects)
    max_x = max(rect.right for rect in rects)
    max_y = max(rect.bottom for rect in rects)
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def fit_to_content(
    nodes: Iterable[Node],
    viewport_size: Size,
    padding: float = DEFAULT_FIT_PADDING,
    family: DiagramFamily = DiagramFamily.FLOW,
    min_scale: float = MIN_SCALE,
    max_scale: float = MAX_SCALE,
) -> Viewport:
    box = bounding_box(nodes, family)
    if box is None:
        return IDENTITY_VIEWPORT

    padded_width = box.width + 2 * padding
    padded_height = box.height + 2 * padding
    candidates = [1.0]
    if padded_width > 0:
        candidates.append(viewport_size.width / padded_width)
    if padded_height > 0:
        candidates.append(viewport_size.height / padded_height)
    scale = clamp_scale(min(candidates), min_scale, max_scale)

    center = box.center
    return Viewport(
        offset_x=viewport_size.width / 2 - center.x * scale,
        offset_y=viewport_size.height / 2 - center.y * scale,
        scale=scale,
    )


def visible_center(viewport: Viewport, viewport_size: Size) -> Point:
    """Model-space point under the middle of the drawing surface."""
    return to_model_space(Point(viewport_size.width / 2, viewport_size.height / 2), viewport)
