from __future__ import annotations

import itertools
import uuid
from typing import Protocol


class IdFactory(Protocol):
    def new_id(self, prefix: str) -> str: ...


class UuidIdFactory(IdFactory):
    def new_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex}"


class SequentialIdFactory(IdFactory):
    """Deterministic ids for tests and reproducible exports.

    The counter is shared across prefixes, so an id is never handed out twice
    by the same factory.
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._counter)}"


DEFAULT_ID_FACTORY: IdFactory = UuidIdFactory()
