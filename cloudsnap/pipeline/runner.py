"""Sequential step runner with reverse-order compensation."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from cloudsnap.core.exceptions import BuildCancelledError, StepHaltedError
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import Step, StepAction


@dataclass
class Runner:
    """Run steps in order; on halt, clean up completed steps in reverse.

    The runner never retries a step and never inspects the kind of error
    that halted the build: it records the cause in ``state.error`` and
    compensates.
    """

    steps: Sequence[Step]

    async def run(self, state: BuildState) -> None:
        completed: list[Step] = []

        try:
            for step in self.steps:
                log = state.log.bind(step=step.name)
                log.debug("running step")
                try:
                    action = await step.run(state)
                except asyncio.CancelledError:
                    state.error = BuildCancelledError(step.name)
                    log.error(str(state.error))
                    raise
                except Exception as e:
                    state.error = e
                    log.error("{error}", error=str(e))
                    action = StepAction.HALT

                if action is StepAction.HALT:
                    if state.error is None:
                        state.error = StepHaltedError(step.name)
                    log.debug("step halted the build")
                    break

                completed.append(step)
        finally:
            if state.error is not None:
                await self._cleanup(completed, state)

    async def _cleanup(self, completed: list[Step], state: BuildState) -> None:
        for step in reversed(completed):
            log = state.log.bind(step=step.name)
            log.debug("cleaning up")
            try:
                await step.cleanup(state)
            except Exception as e:
                state.warn(f"cleanup of step '{step.name}' failed: {e}")

        if state.error is not None:
            for warning in state.cleanup_warnings:
                state.error.add_note(warning)
