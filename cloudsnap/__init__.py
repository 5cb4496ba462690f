"""cloudsnap: build reusable IONOS Cloud snapshots.

A build creates a transient datacenter with one server, customizes the
server over SSH, snapshots its boot volume, and deletes the datacenter.
A failed build removes whatever it created before reporting the error.

Example:
    import asyncio
    from cloudsnap import Builder, load_config

    artifact = asyncio.run(Builder(load_config("build.toml")).run())
    print(artifact)
"""

from cloudsnap.artifact import Artifact
from cloudsnap.builder import Builder
from cloudsnap.config import BuildConfig, load_config, prepare
from cloudsnap.core.exceptions import (
    BuildCancelledError,
    CloudsnapError,
    ConfigurationError,
    KeyMaterialError,
    MissingTrackingHandleError,
    NoCommunicatorError,
    OperationTimeoutError,
    RemoteCommandError,
    RemoteOperationFailedError,
    RemoteRejectionError,
    ValidationError,
)

__all__ = [
    "Artifact",
    "BuildCancelledError",
    "BuildConfig",
    "Builder",
    "CloudsnapError",
    "ConfigurationError",
    "KeyMaterialError",
    "MissingTrackingHandleError",
    "NoCommunicatorError",
    "OperationTimeoutError",
    "RemoteCommandError",
    "RemoteOperationFailedError",
    "RemoteRejectionError",
    "ValidationError",
    "load_config",
    "prepare",
]
