from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cloudsnap.pipeline.state import BuildState


class StepAction(Enum):
    CONTINUE = "continue"
    HALT = "halt"


@runtime_checkable
class Step(Protocol):
    """A unit of work with a compensating cleanup.

    ``run`` either returns a verdict or raises; a raised exception halts the
    build with that exception as the cause. ``cleanup`` is best-effort,
    must tolerate being called more than once, and only runs for steps
    whose ``run`` completed.
    """

    name: str

    async def run(self, state: BuildState) -> StepAction: ...

    async def cleanup(self, state: BuildState) -> None: ...
