"""Compute-instance creation: datacenter, LAN, server with boot volume."""

from __future__ import annotations

from dataclasses import dataclass

from cloudsnap.config import BuildConfig
from cloudsnap.core.exceptions import MissingTrackingHandleError, ProvisioningError
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction
from cloudsnap.providers.ionos.client import IonosClient
from cloudsnap.providers.ionos.images import select_image
from cloudsnap.providers.ionos.types import Server, VolumeProperties


def build_server_request(
    config: BuildConfig,
    *,
    image_id: str,
    lan_id: int,
    public_key: str | None,
) -> Server:
    """Server create body with one boot volume and one DHCP NIC."""
    volume: VolumeProperties = {
        "name": config.snapshot_name,
        "type": config.disk_type,
        "size": config.disk_size,
        "image": image_id,
    }
    if config.ssh_password:
        volume["imagePassword"] = config.ssh_password
    if public_key:
        volume["sshKeys"] = [public_key]

    return {
        "properties": {
            "name": config.snapshot_name,
            "cores": config.cores,
            "ram": config.ram,
        },
        "entities": {
            "volumes": {"items": [{"properties": volume}]},
            "nics": {
                "items": [
                    {
                        "properties": {
                            "name": config.snapshot_name,
                            "dhcp": True,
                            "lan": lan_id,
                        },
                    },
                ],
            },
        },
    }


def _first_ip(server: Server) -> str:
    nics = server.get("entities", {}).get("nics", {}).get("items", [])
    if not nics:
        raise ProvisioningError("server has no network interface")
    ips = nics[0].get("properties", {}).get("ips") or []
    if not ips:
        raise ProvisioningError("server network interface has no IP address assigned")
    return ips[0]


@dataclass
class StepCreateServer:
    """Create the datacenter, LAN and server the image is built on.

    Each mutation is submitted and then awaited through its tracking handle
    before the next one starts. Everything lives inside the datacenter, so
    deleting it is the only compensation needed. A failure part-way through
    reclaims the datacenter before the error propagates.
    """

    client: IonosClient
    name: str = "create-server"

    async def run(self, state: BuildState) -> StepAction:
        try:
            await self._provision(state)
        except BaseException:
            await self.cleanup(state)
            raise
        state.log.info("Server Created...")
        return StepAction.CONTINUE

    async def _provision(self, state: BuildState) -> None:
        config = state.config
        log = state.log

        log.info("Creating Virtual Data Center...")
        images = await self.client.list_images()
        image_id = select_image(
            images, config.image, disk_type=config.disk_type, location=config.location,
        )
        if not image_id:
            log.warning(
                "No public {disk_type} image in {location} matches '{image}'",
                disk_type=config.disk_type, location=config.location, image=config.image,
            )

        try:
            dc = await self.client.create_datacenter(config.snapshot_name, config.location)
        except MissingTrackingHandleError as e:
            if isinstance(e.resource, dict):
                state.datacenter_id = e.resource.get("id")
            raise
        state.datacenter_id = dc.resource["id"]
        await self.client.wait_for_request(dc.request_path, "datacenter creation")

        log.info("Creating LAN...")
        lan = await self.client.create_lan(state.datacenter_id, config.snapshot_name, public=True)
        await self.client.wait_for_request(lan.request_path, "LAN creation")
        try:
            lan_id = int(lan.resource["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProvisioningError(f"LAN id is not an integer: {lan.resource.get('id')!r}") from e

        log.info("Creating Server...")
        request = build_server_request(
            config, image_id=image_id, lan_id=lan_id, public_key=state.ssh_public_key,
        )
        created = await self.client.create_server(state.datacenter_id, request)
        await self.client.wait_for_request(created.request_path, "server creation")

        volumes = created.resource.get("entities", {}).get("volumes", {}).get("items", [])
        if not volumes or "id" not in volumes[0]:
            raise ProvisioningError("server was created without a boot volume")
        state.volume_id = volumes[0]["id"]

        server_id = created.resource.get("id")
        if not server_id:
            raise ProvisioningError("server was created without an id")
        server = await self.client.get_server(state.datacenter_id, server_id)

        state.instance_id = server.get("id", server_id)
        state.server_ip = _first_ip(server)
        state.generated_data.update(
            datacenter_id=state.datacenter_id,
            instance_id=state.instance_id,
            volume_id=state.volume_id,
            server_ip=state.server_ip,
        )

    async def cleanup(self, state: BuildState) -> None:
        if state.datacenter_id:
            state.log.info("Removing Virtual Data Center...")
            await destroy_datacenter(self.client, state)


async def destroy_datacenter(client: IonosClient, state: BuildState) -> bool:
    """Delete the recorded datacenter and wait until it is gone.

    Failures are recorded as warnings asking for manual removal, never raised.
    A datacenter that no longer exists counts as deleted.

    Returns:
        True if nothing is left to reclaim.
    """
    datacenter_id = state.datacenter_id
    if not datacenter_id:
        return True

    try:
        deleted = await client.delete_datacenter(datacenter_id)
        if deleted is not None:
            await client.wait_for_datacenter_deletion(datacenter_id)
    except Exception as e:
        state.warn(
            f"Error deleting Virtual Data Center {datacenter_id}. "
            f"Please destroy it manually: {e}"
        )
        return False

    state.datacenter_id = None
    state.log.info("Virtual Data Center deleted...")
    return True
