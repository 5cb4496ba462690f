from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from cloudsnap.core.exceptions import NoCommunicatorError, RemoteCommandError
from cloudsnap.infra.ssh import Communicator
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction

REMOTE_SCRIPT_DIR = "/tmp"


async def run_checked(communicator: Communicator, command: str, state: BuildState) -> str:
    """Run a command on the guest, raising if it exits non-zero."""
    code, stdout, stderr = await communicator.run(command)
    for line in stdout.splitlines():
        state.log.info("    {line}", line=line)
    if code != 0:
        raise RemoteCommandError(command, code, stderr)
    return stdout


@dataclass
class StepProvision:
    """Run the configured inline commands and scripts on the guest."""

    name: str = "provision"

    async def run(self, state: BuildState) -> StepAction:
        config = state.config
        if not config.inline and not config.scripts:
            return StepAction.CONTINUE

        communicator = state.communicator
        if communicator is None:
            raise NoCommunicatorError()

        state.log.info("Provisioning with shell...")
        for command in config.inline:
            state.log.info("Executing: {command}", command=command)
            await run_checked(communicator, command, state)

        for script in config.scripts:
            remote = f"{REMOTE_SCRIPT_DIR}/{Path(script).name}"
            state.log.info("Uploading {script} => {remote}", script=script, remote=remote)
            await communicator.upload(str(Path(script).expanduser()), remote)
            quoted = shlex.quote(remote)
            await run_checked(communicator, f"chmod +x {quoted} && {quoted}", state)

        return StepAction.CONTINUE

    async def cleanup(self, state: BuildState) -> None:
        pass
