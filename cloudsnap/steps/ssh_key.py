from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import asyncssh

from cloudsnap.core.exceptions import KeyMaterialError
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import StepAction


def parse_private_key(data: bytes | str) -> tuple[str, str]:
    """Parse a private key and derive its public half.

    Returns:
        (OpenSSH private key, authorized_keys line for the public key).

    Raises:
        KeyMaterialError: If the key cannot be parsed.
    """
    try:
        key = asyncssh.import_private_key(data)
    except (asyncssh.KeyImportError, ValueError) as e:
        raise KeyMaterialError(f"failed to parse private key: {e}") from e
    private = key.export_private_key("openssh").decode()
    public = key.export_public_key("openssh").decode().strip()
    return private, public


@dataclass
class StepCreateSSHKey:
    """Make the configured key material available to the server and the session.

    A configured private key is parsed and its public half derived. With
    only an SSH password there is nothing to prepare.
    """

    debug: bool = False
    debug_key_path: str = ""
    name: str = "create-ssh-key"

    async def run(self, state: BuildState) -> StepAction:
        config = state.config
        if not config.ssh_private_key_file:
            return StepAction.CONTINUE

        state.log.info("Reading ssh key from {path}...", path=config.ssh_private_key_file)
        try:
            pem = config.read_private_key()
        except OSError as e:
            raise KeyMaterialError(f"failed to read private key: {e}") from e
        state.ssh_private_key, state.ssh_public_key = parse_private_key(pem)

        if self.debug:
            self._save_debug_key(state)

        return StepAction.CONTINUE

    def _save_debug_key(self, state: BuildState) -> None:
        path = Path(self.debug_key_path)
        state.log.info("Saving key for debug purposes: {path}", path=path)
        path.write_text(state.ssh_private_key or "")
        os.chmod(path, 0o600)

    async def cleanup(self, state: BuildState) -> None:
        pass
