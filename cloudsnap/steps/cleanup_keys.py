from __future__ import annotations

import shlex
from dataclasses import dataclass

from cloudsnap.core.exceptions import NoCommunicatorError
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction


def authorized_keys_commands(username: str) -> list[str]:
    home = "/root" if username == "root" else f"/home/{username}"
    commands = [f"rm -f {shlex.quote(home)}/.ssh/authorized_keys"]
    if username != "root":
        commands.append("sudo rm -f /root/.ssh/authorized_keys")
    return commands


@dataclass
class StepCleanupTempKeys:
    """Strip authorized_keys from the guest so the image does not trust the build key."""

    name: str = "cleanup-temp-keys"

    async def run(self, state: BuildState) -> StepAction:
        config = state.config
        if not config.ssh_clear_authorized_keys:
            return StepAction.CONTINUE

        communicator = state.communicator
        if communicator is None:
            raise NoCommunicatorError()

        state.log.info("Trying to remove ephemeral keys from authorized_keys files")
        for command in authorized_keys_commands(config.ssh_username):
            code, _, stderr = await communicator.run(command)
            if code != 0:
                state.log.warning(
                    "Error removing ephemeral keys ({command} exited {code}): {stderr}",
                    command=command, code=code, stderr=stderr.strip(),
                )
        return StepAction.CONTINUE

    async def cleanup(self, state: BuildState) -> None:
        pass
