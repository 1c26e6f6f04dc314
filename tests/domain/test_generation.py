from __future__ import annotations

import asyncio

from domain.models import Diagram, DiagramFamily, Node
from domain.services.generation import GenerationSession

CURRENT = Diagram(family=DiagramFamily.FLOW)
GENERATED = Diagram(family=DiagramFamily.FLOW, nodes=(Node(id="t", kind="task", label="Draft"),))


class ScriptedGenerator:
    def __init__(self, result: Diagram | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.release = asyncio.Event()
        self.release.set()

    async def generate(self, description: str, notation: str) -> Diagram | None:
        self.calls.append((description, notation))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


def test_success_replaces_current_diagram() -> None:
    session = GenerationSession(ScriptedGenerator(result=GENERATED), CURRENT)

    result = asyncio.run(session.request("order to cash", "flow"))

    assert result == GENERATED
    assert session.current == GENERATED
    assert not session.in_flight


def test_empty_result_keeps_current_diagram() -> None:
    session = GenerationSession(ScriptedGenerator(result=None), CURRENT)

    assert asyncio.run(session.request("anything", "flow")) is None
    assert session.current == CURRENT
    assert not session.in_flight


def test_generator_error_keeps_current_diagram() -> None:
    session = GenerationSession(ScriptedGenerator(error=RuntimeError("quota")), CURRENT)

    assert asyncio.run(session.request("anything", "flow")) is None
    assert session.current == CURRENT
    assert not session.in_flight


def test_second_request_while_in_flight_is_rejected() -> None:
    async def scenario() -> tuple[Diagram | None, Diagram | None, ScriptedGenerator, bool]:
        generator = ScriptedGenerator(result=GENERATED)
        generator.release.clear()
        session = GenerationSession(generator, CURRENT)

        first = asyncio.create_task(session.request("first", "flow"))
        await asyncio.sleep(0)
        busy = session.in_flight
        second = await session.request("second", "flow")
        generator.release.set()
        return await first, second, generator, busy

    first, second, generator, busy = asyncio.run(scenario())

    assert busy
    assert first == GENERATED
    assert second is None
    assert generator.calls == [("first", "flow")]
