from __future__ import annotations

from pathlib import Path

import pytest

from cloudsnap.artifact import Artifact
from cloudsnap.builder import Builder
from cloudsnap.cli import EXIT_FAILURE, main
from cloudsnap.core.exceptions import RemoteOperationFailedError

pytestmark = [pytest.mark.unit]


@pytest.fixture
def build_file(tmp_path: Path) -> Path:
    path = tmp_path / "build.toml"
    path.write_text(
        'image = "ubuntu-22.04"\n'
        'username = "u"\n'
        'password = "cli-test-pw"\n'
        'ssh_password = "cli-guest-pw"\n'
        'snapshot_name = "cli-base"\n'
    )
    return path


def test_missing_build_file(tmp_path: Path):
    assert main(["build", str(tmp_path / "absent.toml")]) == EXIT_FAILURE


def test_command_is_required():
    with pytest.raises(SystemExit):
        main([])


def test_successful_build_exits_zero(build_file: Path, monkeypatch: pytest.MonkeyPatch):
    async def fake_run(self: Builder) -> Artifact:
        assert self.config.debug is True
        return Artifact(snapshot_name=self.config.snapshot_name, snapshot_id="snap-1")

    monkeypatch.setattr(Builder, "run", fake_run)
    assert main(["build", str(build_file), "--debug"]) == 0


def test_failed_build_exits_one(build_file: Path, monkeypatch: pytest.MonkeyPatch):
    async def fake_run(self: Builder) -> Artifact:
        raise RemoteOperationFailedError("server creation", "out of capacity")

    monkeypatch.setattr(Builder, "run", fake_run)
    assert main(["build", str(build_file)]) == EXIT_FAILURE
