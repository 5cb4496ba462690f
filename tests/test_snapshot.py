from __future__ import annotations

import pytest

from cloudsnap.core.exceptions import NoCommunicatorError, RemoteCommandError
from cloudsnap.pipeline import BuildState, StepAction
from cloudsnap.providers.ionos.client import IonosClient
from cloudsnap.steps.snapshot import SYNC_COMMAND, StepTakeSnapshot
from conftest import FakeCommunicator, FakeIonos

pytestmark = [pytest.mark.unit]


@pytest.fixture
async def built(client: IonosClient, state: BuildState, communicator: FakeCommunicator) -> BuildState:
    dc = await client.create_datacenter("web-base", "us/las")
    state.datacenter_id = dc.resource["id"]
    state.volume_id = "vol-1"
    state.instance_id = "srv-1"
    state.communicator = communicator
    return state


class TestStepTakeSnapshot:
    @pytest.mark.asyncio
    async def test_linux_guest_syncs_before_snapshot(
        self, ionos: FakeIonos, client: IonosClient, built: BuildState, communicator: FakeCommunicator,
    ):
        ionos.licence_type = "LINUX"
        calls_before_sync: list[int] = []
        original_run = communicator.run

        async def run(*command, **kwargs):
            calls_before_sync.append(ionos.count("POST", "/datacenters/"))
            return await original_run(*command, **kwargs)

        communicator.run = run

        assert await StepTakeSnapshot(client).run(built) is StepAction.CONTINUE

        assert communicator.commands == [SYNC_COMMAND]
        assert calls_before_sync == [0]
        assert len(ionos.snapshot_forms) == 1

    @pytest.mark.asyncio
    async def test_windows_guest_skips_sync(
        self, ionos: FakeIonos, client: IonosClient, built: BuildState, communicator: FakeCommunicator,
    ):
        ionos.licence_type = "WINDOWS"

        await StepTakeSnapshot(client).run(built)

        assert communicator.commands == []
        assert len(ionos.snapshot_forms) == 1

    @pytest.mark.asyncio
    async def test_records_snapshot(self, ionos: FakeIonos, client: IonosClient, built: BuildState):
        await StepTakeSnapshot(client).run(built)

        assert built.snapshot_id == "snap-1"
        assert built.snapshot_name == "web-base"
        assert built.generated_data["snapshot_id"] == "snap-1"
        assert ionos.snapshot_forms[0]["name"] == "web-base"
        assert ionos.count("GET", "/snapshots/snap-1") == 2

    @pytest.mark.asyncio
    async def test_failed_sync_aborts_before_snapshot(
        self, ionos: FakeIonos, client: IonosClient, built: BuildState, communicator: FakeCommunicator,
    ):
        communicator.exit_codes[SYNC_COMMAND] = 1

        with pytest.raises(RemoteCommandError) as exc_info:
            await StepTakeSnapshot(client).run(built)

        assert str(exc_info.value) == "sync command exited with code 1: boom"
        assert ionos.snapshot_forms == []

    @pytest.mark.asyncio
    async def test_requires_a_remote_session(self, ionos: FakeIonos, client: IonosClient, built: BuildState):
        built.communicator = None

        with pytest.raises(NoCommunicatorError, match="no communicator found"):
            await StepTakeSnapshot(client).run(built)
        assert ionos.snapshot_forms == []
