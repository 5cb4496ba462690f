"""Async HTTP client for the IONOS Cloud API.

Returns TypedDicts directly from API responses. Every mutating call is
accepted asynchronously by the provider: the response carries a
``Location`` header pointing at a request-status resource (the tracking
handle), which must be polled until the request is done.

Example:
    async with IonosClient.from_config(config) as client:
        submitted = await client.create_datacenter("build", "us/las")
        await client.wait_for_request(submitted.request_path, "datacenter creation")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

from cloudsnap.core.exceptions import MissingTrackingHandleError, RemoteRejectionError
from cloudsnap.infra.http import Auth, BasicAuth, BearerAuth, HttpClient, HttpError, Response
from cloudsnap.providers.wait import PollSettings, wait_for_ready

from .types import Datacenter, Image, ImageList, Lan, RequestStatus, Server, Snapshot, Volume

if TYPE_CHECKING:
    from cloudsnap.config import BuildConfig

IONOS_API_BASE = "https://api.ionos.com/cloudapi/v6"
DEFAULT_DESCRIPTION = "this is the cloudsnap datacenter"
USER_AGENT = "cloudsnap"


@dataclass(frozen=True, slots=True)
class Submitted[T]:
    """A mutation the provider accepted, plus the handle to track it."""

    resource: T
    request_path: str


def request_path(resp: Response[Any]) -> str:
    """Tracking handle from a mutation response, empty if absent."""
    return resp.header("location") or ""


class IonosClient:
    """Resource client for datacenters, LANs, servers, volumes, images and snapshots."""

    def __init__(self, http: HttpClient, poll: PollSettings | None = None) -> None:
        self._http = http
        self._poll = poll or PollSettings()
        self._log = logger.bind(component="ionos")

    @classmethod
    def from_config(cls, config: BuildConfig) -> IonosClient:
        auth: Auth = (
            BearerAuth(config.token)
            if config.token
            else BasicAuth(config.username or "", config.password or "")
        )
        http = HttpClient(
            config.url,
            auth,
            timeout=config.http_timeout,
            default_headers={"User-Agent": USER_AGENT},
        )
        return cls(http, config.poll)

    @property
    def poll(self) -> PollSettings:
        return self._poll

    async def __aenter__(self) -> IonosClient:
        await self._http.__aenter__()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self._http.close()

    async def close(self) -> None:
        await self._http.close()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _read[T](
        self,
        operation: str,
        path: str,
        response_type: type[T],
        params: dict[str, Any] | None = None,
    ) -> T:
        try:
            resp = await self._http.get(path, params=params, response_type=response_type)
        except HttpError as e:
            raise RemoteRejectionError(operation, e) from e
        return resp.data

    async def _submit[T](
        self,
        operation: str,
        method: Literal["POST", "DELETE"],
        path: str,
        response_type: type[T],
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> Submitted[T]:
        try:
            if method == "POST":
                resp = await self._http.post(
                    path, json=json, data=data, response_type=response_type,
                )
            else:
                resp = await self._http.delete(path, response_type=response_type)
        except HttpError as e:
            raise RemoteRejectionError(operation, e) from e

        handle = request_path(resp)
        if not handle:
            raise MissingTrackingHandleError(operation, resp.data)
        self._log.debug("{operation} accepted, tracking {handle}", operation=operation, handle=handle)
        return Submitted(resource=resp.data, request_path=handle)

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_images(self) -> list[Image]:
        """List every image visible to the account, in catalog order."""
        result = await self._read("listing images", "/images", ImageList, params={"depth": 1})
        return list((result or {}).get("items", []))

    async def get_datacenter(self, datacenter_id: str) -> Datacenter:
        return await self._read(
            "getting datacenter", f"/datacenters/{datacenter_id}", Datacenter,
        )

    async def get_server(self, datacenter_id: str, server_id: str, *, depth: int = 3) -> Server:
        return await self._read(
            "finding server",
            f"/datacenters/{datacenter_id}/servers/{server_id}",
            Server,
            params={"depth": depth},
        )

    async def get_volume(self, datacenter_id: str, volume_id: str) -> Volume:
        return await self._read(
            "getting volume", f"/datacenters/{datacenter_id}/volumes/{volume_id}", Volume,
        )

    async def get_snapshot(self, snapshot_id: str) -> Snapshot:
        return await self._read("getting snapshot", f"/snapshots/{snapshot_id}", Snapshot)

    async def get_request_status(self, handle: str) -> RequestStatus:
        return await self._read("getting request status", handle, RequestStatus)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_datacenter(
        self, name: str, location: str, description: str = DEFAULT_DESCRIPTION,
    ) -> Submitted[Datacenter]:
        body = {"properties": {"name": name, "description": description, "location": location}}
        return await self._submit("creating data center", "POST", "/datacenters", Datacenter, json=body)

    async def create_lan(self, datacenter_id: str, name: str, *, public: bool = True) -> Submitted[Lan]:
        body = {"properties": {"name": name, "public": public}}
        return await self._submit(
            "creating LAN", "POST", f"/datacenters/{datacenter_id}/lans", Lan, json=body,
        )

    async def create_server(self, datacenter_id: str, server: Server) -> Submitted[Server]:
        return await self._submit(
            "creating server",
            "POST",
            f"/datacenters/{datacenter_id}/servers",
            Server,
            json=dict(server),
        )

    async def create_snapshot(
        self, datacenter_id: str, volume_id: str, name: str, description: str = "",
    ) -> Submitted[Snapshot]:
        form = {"name": name}
        if description:
            form["description"] = description
        return await self._submit(
            "creating snapshot",
            "POST",
            f"/datacenters/{datacenter_id}/volumes/{volume_id}/create-snapshot",
            Snapshot,
            data=form,
        )

    async def delete_datacenter(self, datacenter_id: str) -> Submitted[None] | None:
        """Delete a datacenter and everything nested in it.

        Returns:
            The accepted deletion, or None when the datacenter no longer exists.
        """
        try:
            return await self._submit(
                "deleting datacenter", "DELETE", f"/datacenters/{datacenter_id}", type(None),
            )
        except RemoteRejectionError as e:
            if e.status == 404:
                self._log.debug("Datacenter {dc} already gone", dc=datacenter_id)
                return None
            raise

    # =========================================================================
    # Polling
    # =========================================================================

    async def wait_for_request(self, handle: str, description: str) -> RequestStatus:
        """Poll a tracking handle until the request is DONE.

        Raises:
            RemoteOperationFailedError: The request ended FAILED.
            OperationTimeoutError: The poll deadline passed first.
        """
        status = await wait_for_ready(
            poll_fn=lambda: self.get_request_status(handle),
            ready_check=lambda s: s["metadata"]["status"] == "DONE",
            terminal_check=lambda s: s["metadata"]["status"] == "FAILED",
            failure_reason=lambda s: s["metadata"].get("message") or "request failed",
            timeout=self._poll.timeout,
            interval=self._poll.interval,
            description=description,
        )
        self._log.info("resource created for path {handle}", handle=handle)
        return status

    async def wait_for_snapshot(self, snapshot_id: str) -> Snapshot:
        """Poll a snapshot until its state is AVAILABLE."""
        return await wait_for_ready(
            poll_fn=lambda: self.get_snapshot(snapshot_id),
            ready_check=lambda s: _state(s) == "AVAILABLE",
            terminal_check=lambda s: _state(s).startswith("FAILED"),
            failure_reason=lambda s: f"snapshot entered state {_state(s)}",
            timeout=self._poll.timeout,
            interval=self._poll.interval,
            description=f"snapshot {snapshot_id}",
        )

    async def wait_for_datacenter_deletion(self, datacenter_id: str) -> None:
        """Poll until reading the datacenter returns 404."""

        async def gone() -> bool:
            try:
                await self.get_datacenter(datacenter_id)
            except RemoteRejectionError as e:
                if e.status == 404:
                    return True
                raise
            return False

        await wait_for_ready(
            poll_fn=gone,
            ready_check=bool,
            timeout=self._poll.timeout,
            interval=self._poll.interval,
            description=f"deletion of datacenter {datacenter_id}",
        )


def _state(resource: Snapshot) -> str:
    return (resource.get("metadata") or {}).get("state", "")
