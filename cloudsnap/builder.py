"""Snapshot builder: wires the provisioning steps into a pipeline.

Example:
    from cloudsnap import Builder, load_config

    artifact = await Builder(load_config("build.toml")).run()
    print(artifact.snapshot_name)
"""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from cloudsnap.artifact import Artifact
from cloudsnap.config import BuildConfig
from cloudsnap.pipeline import BuildState, Runner, Step
from cloudsnap.providers.ionos.client import IonosClient
from cloudsnap.steps import (
    StepCleanupTempKeys,
    StepConnect,
    StepCreateServer,
    StepCreateSSHKey,
    StepDestroyDatacenter,
    StepProvision,
    StepTakeSnapshot,
)
from cloudsnap.steps.connect import TransportFactory, ssh_transport


class Builder:
    """Provision a server, customize it, and capture its boot volume.

    Args:
        config: Validated build settings.
        transport_factory: Creates the remote session for the built server.
        client_factory: Creates the resource client; defaults to the IONOS API.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        transport_factory: TransportFactory = ssh_transport,
        client_factory: Callable[[BuildConfig], IonosClient] = IonosClient.from_config,
    ) -> None:
        self.config = config
        self._transport_factory = transport_factory
        self._client_factory = client_factory

    def steps(self, client: IonosClient) -> list[Step]:
        return [
            StepCreateSSHKey(
                debug=self.config.debug,
                debug_key_path=self.config.debug_key_path,
            ),
            StepCreateServer(client),
            StepConnect(self._transport_factory),
            StepProvision(),
            StepCleanupTempKeys(),
            StepTakeSnapshot(client),
            StepDestroyDatacenter(client),
        ]

    async def run(self) -> Artifact:
        """Run the build.

        Returns:
            The produced snapshot.

        Raises:
            The error that halted the build, with any cleanup warnings
            attached as notes. Cancellation propagates after cleanup.
        """
        state = BuildState(
            config=self.config,
            log=logger.bind(component="build", build=self.config.snapshot_name),
        )

        async with self._client_factory(self.config) as client:
            try:
                await Runner(self.steps(client)).run(state)
            finally:
                if state.communicator is not None:
                    await state.communicator.close()
                    state.communicator = None

        if state.error is not None:
            raise state.error

        return Artifact(
            snapshot_name=self.config.snapshot_name,
            snapshot_id=state.snapshot_id,
            generated_data=dict(state.generated_data),
        )
