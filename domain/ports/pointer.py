from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from domain.models import Point

MoveHandler = Callable[[Point], None]
UpHandler = Callable[[], None]


class PointerSubscription(Protocol):
    def release(self) -> None: ...


class PointerCapture(Protocol):
    """Surface-wide pointer listeners held for the lifetime of one gesture."""

    def acquire(self, on_move: MoveHandler, on_up: UpHandler) -> PointerSubscription: ...


class _NoopSubscription:
    def release(self) -> None:
        return None


class NoopPointerCapture(PointerCapture):
    def acquire(self, on_move: MoveHandler, on_up: UpHandler) -> PointerSubscription:
        return _NoopSubscription()
