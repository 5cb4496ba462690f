from __future__ import annotations

from dataclasses import dataclass

from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction
from cloudsnap.providers.ionos.client import IonosClient
from cloudsnap.steps.create_server import destroy_datacenter


@dataclass
class StepDestroyDatacenter:
    """Reclaim the transient datacenter once the snapshot exists.

    The snapshot outlives the datacenter, so a failed deletion is reported
    for manual removal instead of failing the build.
    """

    client: IonosClient
    name: str = "destroy-datacenter"

    async def run(self, state: BuildState) -> StepAction:
        if state.datacenter_id:
            state.log.info("Destroying Virtual Data Center {dc}...", dc=state.datacenter_id)
            await destroy_datacenter(self.client, state)
        return StepAction.CONTINUE

    async def cleanup(self, state: BuildState) -> None:
        pass
