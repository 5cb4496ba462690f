from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from cloudsnap.config import BuildConfig, prepare
from cloudsnap.infra.ssh import CommandResult
from cloudsnap.pipeline.state import BuildState
from cloudsnap.providers.ionos.client import IonosClient

API_PASSWORD = "api-secret-pw"
GUEST_PASSWORD = "guest-secret-pw"
SERVER_IP = "203.0.113.10"

UBUNTU_IMAGE = {
    "id": "img-ubuntu-2204",
    "properties": {
        "name": "Ubuntu-22.04-server",
        "imageType": "HDD",
        "location": "us/las",
        "public": True,
    },
}


# ─── Fake IONOS Cloud API ────────────────────────────────────────────


@dataclass
class FakeIonos:
    """In-memory stand-in for the IONOS Cloud API.

    Every mutation is accepted with a Location header. The first status
    read of a request reports RUNNING, later ones DONE, unless the
    request kind is listed in ``fail_requests`` or ``stalled_requests``.
    """

    images: list[dict[str, Any]] = field(default_factory=lambda: [UBUNTU_IMAGE])
    licence_type: str = "LINUX"
    fail_requests: dict[str, str] = field(default_factory=dict)
    missing_location: set[str] = field(default_factory=set)
    stalled_requests: set[str] = field(default_factory=set)
    fail_delete: bool = False
    snapshot_states: list[str] = field(default_factory=lambda: ["BUSY", "AVAILABLE"])

    calls: list[tuple[str, str]] = field(default_factory=list)
    authorization: list[str] = field(default_factory=list)
    user_agents: list[str] = field(default_factory=list)
    datacenters: dict[str, dict[str, Any]] = field(default_factory=dict)
    server_requests: list[dict[str, Any]] = field(default_factory=list)
    snapshot_forms: list[dict[str, str]] = field(default_factory=list)

    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _requests: dict[str, tuple[str, int]] = field(default_factory=dict)

    def count(self, method: str, prefix: str) -> int:
        return sum(1 for m, p in self.calls if m == method and p.startswith(prefix))

    def _accepted(self, request: web.Request, kind: str, body: dict[str, Any] | None) -> web.Response:
        headers = {}
        if kind not in self.missing_location:
            n = str(next(self._ids))
            self._requests[n] = (kind, 0)
            headers["Location"] = f"{request.url.origin()}/requests/{n}/status"
        if body is None:
            return web.Response(status=202, headers=headers)
        return web.json_response(body, status=202, headers=headers)

    def app(self) -> web.Application:
        @web.middleware
        async def record(request: web.Request, handler: Callable[..., Any]) -> web.StreamResponse:
            self.calls.append((request.method, request.path))
            self.authorization.append(request.headers.get("Authorization", ""))
            self.user_agents.append(request.headers.get("User-Agent", ""))
            return await handler(request)

        async def list_images(_: web.Request) -> web.Response:
            return web.json_response({"items": self.images})

        async def create_datacenter(request: web.Request) -> web.Response:
            body = await request.json()
            dc_id = f"dc-{next(self._ids)}"
            self.datacenters[dc_id] = {"id": dc_id, **body}
            return self._accepted(request, "datacenter", {"id": dc_id, **body})

        async def get_datacenter(request: web.Request) -> web.Response:
            dc = self.datacenters.get(request.match_info["dc"])
            if dc is None:
                return web.json_response({"httpStatus": 404}, status=404)
            return web.json_response(dc)

        async def delete_datacenter(request: web.Request) -> web.Response:
            dc_id = request.match_info["dc"]
            if self.fail_delete:
                return web.Response(status=500, text="internal error")
            if self.datacenters.pop(dc_id, None) is None:
                return web.json_response({"httpStatus": 404}, status=404)
            return self._accepted(request, "delete", None)

        async def create_lan(request: web.Request) -> web.Response:
            body = await request.json()
            return self._accepted(request, "lan", {"id": "1", **body})

        async def create_server(request: web.Request) -> web.Response:
            body = await request.json()
            self.server_requests.append(body)
            created = {
                "id": "srv-1",
                "properties": body["properties"],
                "entities": {"volumes": {"items": [{"id": "vol-1"}]}},
            }
            return self._accepted(request, "server", created)

        async def get_server(request: web.Request) -> web.Response:
            return web.json_response({
                "id": request.match_info["server"],
                "properties": {"name": "build", "bootVolume": {"id": "vol-1"}},
                "entities": {"nics": {"items": [{"properties": {"ips": [SERVER_IP]}}]}},
            })

        async def get_volume(request: web.Request) -> web.Response:
            return web.json_response({
                "id": request.match_info["volume"],
                "properties": {"licenceType": self.licence_type},
            })

        async def create_snapshot(request: web.Request) -> web.Response:
            form = await request.post()
            self.snapshot_forms.append({k: str(v) for k, v in form.items()})
            return self._accepted(request, "snapshot", {"id": "snap-1", "properties": {"name": form.get("name")}})

        async def get_snapshot(request: web.Request) -> web.Response:
            state = self.snapshot_states.pop(0) if len(self.snapshot_states) > 1 else self.snapshot_states[0]
            return web.json_response({"id": request.match_info["snapshot"], "metadata": {"state": state}})

        async def request_status(request: web.Request) -> web.Response:
            n = request.match_info["n"]
            kind, reads = self._requests[n]
            self._requests[n] = (kind, reads + 1)
            if kind in self.fail_requests:
                metadata = {"status": "FAILED", "message": self.fail_requests[kind]}
            elif kind in self.stalled_requests:
                metadata = {"status": "RUNNING", "message": ""}
            else:
                metadata = {"status": "RUNNING" if reads == 0 else "DONE", "message": ""}
            return web.json_response({"id": n, "metadata": metadata})

        app = web.Application(middlewares=[record])
        app.router.add_get("/images", list_images)
        app.router.add_post("/datacenters", create_datacenter)
        app.router.add_get("/datacenters/{dc}", get_datacenter)
        app.router.add_delete("/datacenters/{dc}", delete_datacenter)
        app.router.add_post("/datacenters/{dc}/lans", create_lan)
        app.router.add_post("/datacenters/{dc}/servers", create_server)
        app.router.add_get("/datacenters/{dc}/servers/{server}", get_server)
        app.router.add_get("/datacenters/{dc}/volumes/{volume}", get_volume)
        app.router.add_post("/datacenters/{dc}/volumes/{volume}/create-snapshot", create_snapshot)
        app.router.add_get("/snapshots/{snapshot}", get_snapshot)
        app.router.add_get("/requests/{n}/status", request_status)
        return app


# ─── Fake remote session ─────────────────────────────────────────────


@dataclass
class FakeCommunicator:
    exit_codes: dict[str, int] = field(default_factory=dict)
    output: dict[str, str] = field(default_factory=dict)
    connect_error: Exception | None = None

    commands: list[str] = field(default_factory=list)
    uploads: list[tuple[str, str]] = field(default_factory=list)
    connected: bool = False
    closed: int = 0

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def run(self, command: str, *, timeout: float | None = None) -> CommandResult:
        self.commands.append(command)
        code = self.exit_codes.get(command, 0)
        return CommandResult(code, self.output.get(command, ""), "boom" if code else "")

    async def upload(self, local: str, remote: str) -> None:
        self.uploads.append((local, remote))

    async def close(self) -> None:
        self.closed += 1


# ─── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def ionos() -> FakeIonos:
    return FakeIonos()


@pytest.fixture
async def server(ionos: FakeIonos):
    srv = TestServer(ionos.app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def base_url(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def make_config() -> Callable[..., BuildConfig]:
    def make(**overrides: Any) -> BuildConfig:
        raw: dict[str, Any] = {
            "image": "ubuntu-22.04",
            "username": "builder@example.com",
            "password": API_PASSWORD,
            "url": "http://ionos.invalid",
            "location": "us/las",
            "snapshot_name": "web-base",
            "ssh_password": GUEST_PASSWORD,
            "poll_interval": 0.01,
            "state_timeout": 5,
        }
        raw.update(overrides)
        return prepare({k: v for k, v in raw.items() if v is not None}, env={})

    return make


@pytest.fixture
def config(make_config: Callable[..., BuildConfig]) -> BuildConfig:
    return make_config()


@pytest.fixture
async def client(make_config: Callable[..., BuildConfig], base_url: str):
    async with IonosClient.from_config(make_config(url=base_url)) as c:
        yield c


@pytest.fixture
def state(config: BuildConfig) -> BuildState:
    return BuildState(config=config)


@pytest.fixture
def communicator() -> FakeCommunicator:
    return FakeCommunicator()
