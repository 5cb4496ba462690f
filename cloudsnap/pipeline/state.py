"""Build state shared between pipeline steps.

One ``BuildState`` exists per build. Steps run strictly one after another,
so a field written by a step is visible to every step that runs after it.
A step may only rely on fields that an earlier step in the fixed pipeline
order always sets; ``require`` enforces that contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from cloudsnap.core.exceptions import MissingStateError

if TYPE_CHECKING:
    from loguru import Logger

    from cloudsnap.config import BuildConfig
    from cloudsnap.infra.ssh import Communicator


@dataclass
class BuildState:
    """Runtime state for a single build."""

    config: BuildConfig
    log: Logger = field(default_factory=lambda: logger.bind(component="build"))

    # Failure bookkeeping
    error: BaseException | None = None
    cleanup_warnings: list[str] = field(default_factory=list)

    # Key material
    ssh_private_key: str | None = None
    ssh_public_key: str | None = None

    # Provisioned resources
    datacenter_id: str | None = None
    volume_id: str | None = None
    instance_id: str | None = None
    server_ip: str | None = None

    # Remote session
    communicator: Communicator | None = None

    # Produced image
    snapshot_id: str | None = None
    snapshot_name: str | None = None

    generated_data: dict[str, str] = field(default_factory=dict)

    def require(self, name: str) -> Any:
        """Return a field an earlier step must have set."""
        value = getattr(self, name)
        if value is None:
            raise MissingStateError(name)
        return value

    def warn(self, message: str) -> None:
        """Record and log a non-fatal problem."""
        self.cleanup_warnings.append(message)
        self.log.warning(message)
