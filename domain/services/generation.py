from __future__ import annotations

import logging
from typing import Generic, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

DiagramT = TypeVar("DiagramT")
DiagramT_co = TypeVar("DiagramT_co", covariant=True)


class DiagramGenerator(Protocol[DiagramT_co]):
    async def generate(self, description: str, notation: str) -> Optional[DiagramT_co]: ...


class GenerationSession(Generic[DiagramT]):
    """One generation request at a time for a single editor.

    ``in_flight`` is a plain flag checked and set on the event loop thread,
    so a second request issued before the first completes is rejected
    without reaching the generator.
    """

    def __init__(self, generator: DiagramGenerator[DiagramT], current: DiagramT) -> None:
        self.generator = generator
        self.current = current
        self.in_flight = False

    async def request(self, description: str, notation: str) -> Optional[DiagramT]:
        if self.in_flight:
            logger.info("Generation already in flight, ignoring request for %s", notation)
            return None
        self.in_flight = True
        try:
            result = await self.generator.generate(description, notation)
        except Exception:  # noqa: BLE001
            logger.exception("Diagram generation failed for %s", notation)
            return None
        finally:
            self.in_flight = False
        if result is None:
            logger.warning("Generator returned no %s diagram", notation)
            return None
        self.current = result
        return result
