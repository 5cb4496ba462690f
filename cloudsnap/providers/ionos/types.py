"""IONOS Cloud API payload types.

TypedDicts for the subset of the v6 API this builder touches - no conversion
needed, responses are used as returned.
"""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

# =============================================================================
# Shared
# =============================================================================


class Metadata(TypedDict):
    """Resource metadata block."""

    state: NotRequired[str]
    createdDate: NotRequired[str]
    lastModifiedDate: NotRequired[str]


# =============================================================================
# Datacenters & LANs
# =============================================================================


class DatacenterProperties(TypedDict):
    name: str
    location: str
    description: NotRequired[str]


class Datacenter(TypedDict):
    id: str
    properties: DatacenterProperties
    metadata: NotRequired[Metadata]


class LanProperties(TypedDict):
    name: NotRequired[str]
    public: bool


class Lan(TypedDict):
    # string on the wire, the NIC references it as an integer
    id: str
    properties: LanProperties


# =============================================================================
# Volumes & Servers
# =============================================================================


class VolumeProperties(TypedDict):
    name: NotRequired[str]
    type: NotRequired[str]
    size: NotRequired[float]
    image: NotRequired[str]
    imagePassword: NotRequired[str]
    sshKeys: NotRequired[list[str]]
    licenceType: NotRequired[str]


class Volume(TypedDict):
    id: NotRequired[str]
    properties: VolumeProperties
    metadata: NotRequired[Metadata]


class NicProperties(TypedDict):
    name: NotRequired[str]
    dhcp: NotRequired[bool]
    lan: NotRequired[int]
    ips: NotRequired[list[str]]


class Nic(TypedDict):
    id: NotRequired[str]
    properties: NicProperties


class VolumeItems(TypedDict):
    items: list[Volume]


class NicItems(TypedDict):
    items: list[Nic]


class ServerEntities(TypedDict):
    volumes: NotRequired[VolumeItems]
    nics: NotRequired[NicItems]


class ResourceReference(TypedDict):
    id: str
    type: NotRequired[str]


class ServerProperties(TypedDict):
    name: str
    cores: int
    ram: int
    bootVolume: NotRequired[ResourceReference]
    vmState: NotRequired[str]


class Server(TypedDict):
    id: NotRequired[str]
    properties: ServerProperties
    entities: NotRequired[ServerEntities]
    metadata: NotRequired[Metadata]


# =============================================================================
# Images & Snapshots
# =============================================================================


class ImageProperties(TypedDict):
    name: NotRequired[str]
    imageType: NotRequired[str]
    location: NotRequired[str]
    public: NotRequired[bool]
    licenceType: NotRequired[str]


class Image(TypedDict):
    id: str
    properties: ImageProperties


class ImageList(TypedDict):
    items: list[Image]


class SnapshotProperties(TypedDict):
    name: NotRequired[str]
    description: NotRequired[str]
    location: NotRequired[str]
    size: NotRequired[float]
    licenceType: NotRequired[str]


class Snapshot(TypedDict):
    id: str
    properties: SnapshotProperties
    metadata: NotRequired[Metadata]


# =============================================================================
# Request tracking
# =============================================================================

type RequestState = Literal["QUEUED", "RUNNING", "DONE", "FAILED"]


class RequestStatusMetadata(TypedDict):
    status: RequestState
    message: NotRequired[str]


class RequestStatus(TypedDict):
    id: NotRequired[str]
    metadata: RequestStatusMetadata
