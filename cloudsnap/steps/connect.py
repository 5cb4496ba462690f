from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import asyncssh

from cloudsnap.core.exceptions import ProvisioningError
from cloudsnap.infra.ssh import Communicator, SSHTransport
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction

type TransportFactory = Callable[[BuildState], Communicator]


def ssh_transport(state: BuildState) -> SSHTransport:
    config = state.config
    return SSHTransport(
        host=state.require("server_ip"),
        user=config.ssh_username,
        port=config.ssh_port,
        password=config.ssh_password,
        private_key=state.ssh_private_key,
        retry_timeout=config.ssh_timeout,
    )


@dataclass
class StepConnect:
    """Open the remote session later steps run commands through."""

    factory: TransportFactory = ssh_transport
    name: str = "connect"

    async def run(self, state: BuildState) -> StepAction:
        ip = state.require("server_ip")
        state.log.info("Waiting for SSH to become available on {ip}...", ip=ip)
        communicator = self.factory(state)
        try:
            await communicator.connect()
        except (OSError, asyncssh.Error) as e:
            raise ProvisioningError(f"ssh connection to {ip} failed: {e}") from e
        state.communicator = communicator
        state.log.info("Connected to SSH!")
        return StepAction.CONTINUE

    async def cleanup(self, state: BuildState) -> None:
        if state.communicator is not None:
            await state.communicator.close()
            state.communicator = None
