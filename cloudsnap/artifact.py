from __future__ import annotations

from dataclasses import dataclass, field

BUILDER_ID = "cloudsnap.ionos"


@dataclass(frozen=True, slots=True)
class Artifact:
    """The snapshot produced by a successful build."""

    snapshot_name: str
    snapshot_id: str | None = None
    generated_data: dict[str, str] = field(default_factory=dict)
    builder_id: str = BUILDER_ID

    @property
    def id(self) -> str:
        return self.snapshot_name

    def __str__(self) -> str:
        return f"A snapshot was created: '{self.snapshot_name}'"
