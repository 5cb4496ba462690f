"""Image capture: sync the guest filesystem, then snapshot the boot volume."""

from __future__ import annotations

from dataclasses import dataclass

from cloudsnap.core.exceptions import NoCommunicatorError, ProvisioningError
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction
from cloudsnap.providers.ionos.client import IonosClient
from cloudsnap.steps.provision import run_checked

SYNC_COMMAND = "sync"


@dataclass
class StepTakeSnapshot:
    """Create a snapshot of the boot volume and wait until it is usable.

    Two polls are involved: the create request must finish, and then the
    snapshot itself must reach AVAILABLE. A finished request only means the
    provider processed the call.
    """

    client: IonosClient
    name: str = "take-snapshot"

    async def run(self, state: BuildState) -> StepAction:
        config = state.config
        log = state.log
        log.info("Creating IONOS snapshot...")

        datacenter_id: str = state.require("datacenter_id")
        volume_id: str = state.require("volume_id")
        server_id: str = state.require("instance_id")

        communicator = state.communicator
        if communicator is None:
            raise NoCommunicatorError()

        os_family = await self.guest_os(datacenter_id, server_id)
        log.info("Server OS is {os}", os=os_family)

        if os_family.lower() == "linux":
            log.info("syncing file system changes")
            await run_checked(communicator, SYNC_COMMAND, state)

        log.info("Creating a snapshot for {dc}/volumes/{volume}", dc=datacenter_id, volume=volume_id)
        submitted = await self.client.create_snapshot(
            datacenter_id,
            volume_id,
            config.snapshot_name,
            description=f"created by cloudsnap from {config.image}",
        )
        await self.client.wait_for_request(submitted.request_path, "snapshot creation")

        snapshot_id = submitted.resource["id"]
        state.snapshot_id = snapshot_id
        state.snapshot_name = config.snapshot_name
        state.generated_data["snapshot_id"] = snapshot_id

        log.info("Waiting until snapshot available...")
        await self.client.wait_for_snapshot(snapshot_id)
        log.info("snapshot available")

        return StepAction.CONTINUE

    async def guest_os(self, datacenter_id: str, server_id: str) -> str:
        """Licence type of the server's boot volume (e.g. LINUX, WINDOWS)."""
        server = await self.client.get_server(datacenter_id, server_id, depth=1)
        boot_volume = server.get("properties", {}).get("bootVolume")
        if not boot_volume:
            raise ProvisioningError("no boot volume found on server")

        volume = await self.client.get_volume(datacenter_id, boot_volume["id"])
        return volume.get("properties", {}).get("licenceType", "")

    async def cleanup(self, state: BuildState) -> None:
        pass
