"""TOML-based build configuration.

Loads a build file, applies defaults and environment fallbacks for
credentials, and validates the result into an immutable ``BuildConfig``.

Example build file::

    image = "ubuntu-22.04"
    snapshot_name = "web-base"
    location = "de/fra"
    ssh_password = "s3cret"
    inline = ["apt-get update", "apt-get install -y nginx"]
"""

from __future__ import annotations

import dataclasses
import os
import time
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cloudsnap.core.exceptions import ConfigurationError
from cloudsnap.observability.logging import redact
from cloudsnap.providers.ionos.client import IONOS_API_BASE
from cloudsnap.providers.wait import PollSettings

type RawConfig = dict[str, Any]

DISK_TYPES = ("HDD", "SSD", "SSD Standard", "SSD Premium")


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Immutable, validated build settings.

    Args:
        image: Substring of the public source image name (e.g. "ubuntu-22.04").
        username: IONOS user. Falls back to IONOS_USERNAME.
        password: IONOS password. Falls back to IONOS_PASSWORD.
        token: IONOS API token, used instead of username/password when set.
            Falls back to IONOS_TOKEN.
        url: API base URL. Falls back to IONOS_API_URL.
        location: Datacenter location, e.g. "us/las".
        snapshot_name: Name of the produced snapshot and of every transient resource.
        disk_size: Boot volume size in GB.
        disk_type: Boot volume type.
        cores: Server cores.
        ram: Server memory in MB.
        ssh_username: User for the remote session.
        ssh_password: Password installed on the boot volume and used to connect.
        ssh_private_key_file: Private key whose public half is installed on the volume.
        ssh_port: SSH port.
        ssh_timeout: How long to keep retrying the first SSH connection, in seconds.
        ssh_clear_authorized_keys: Remove authorized_keys from the guest before capture.
        inline: Shell commands run on the guest, in order.
        scripts: Local scripts uploaded and run after the inline commands.
        poll_interval: Seconds between request/snapshot status samples.
        state_timeout: Deadline for a single asynchronous operation, in seconds.
        http_timeout: Per-request HTTP timeout, in seconds.
        debug: Keep the parsed private key on disk for inspection.
        debug_key_path: Where to write it; defaults to "cloudsnap_<snapshot_name>".
    """

    image: str
    username: str | None = None
    password: str | None = None
    token: str | None = None
    url: str = IONOS_API_BASE
    location: str = "us/las"
    snapshot_name: str = ""
    disk_size: float = 50.0
    disk_type: str = "HDD"
    cores: int = 4
    ram: int = 2048
    ssh_username: str = "root"
    ssh_password: str | None = None
    ssh_private_key_file: str | None = None
    ssh_port: int = 22
    ssh_timeout: float = 300.0
    ssh_clear_authorized_keys: bool = False
    inline: tuple[str, ...] = ()
    scripts: tuple[str, ...] = ()
    poll_interval: float = 5.0
    state_timeout: float = 3600.0
    http_timeout: float = 60.0
    debug: bool = False
    debug_key_path: str = ""

    @property
    def poll(self) -> PollSettings:
        return PollSettings(interval=self.poll_interval, timeout=self.state_timeout)

    def read_private_key(self) -> bytes:
        if not self.ssh_private_key_file:
            raise ConfigurationError(["ssh_private_key_file is not set"])
        return Path(self.ssh_private_key_file).expanduser().read_bytes()


_FIELDS = {f.name: f for f in dataclasses.fields(BuildConfig)}

_ENV_FALLBACKS = {
    "username": "IONOS_USERNAME",
    "password": "IONOS_PASSWORD",
    "token": "IONOS_TOKEN",
    "url": "IONOS_API_URL",
}


def _default_snapshot_name() -> str:
    return f"cloudsnap-{int(time.time())}"


def _validate(config: BuildConfig) -> list[str]:
    errors: list[str] = []

    if not config.image:
        errors.append("IONOS 'image' is required")

    if not config.token:
        if not config.username:
            errors.append("IONOS username is required")
        if not config.password:
            errors.append("IONOS password is required")

    if config.disk_type not in DISK_TYPES:
        errors.append(f"disk_type must be one of {', '.join(DISK_TYPES)}, got '{config.disk_type}'")

    numeric = (
        "disk_size", "cores", "ram", "ssh_port",
        "poll_interval", "state_timeout", "http_timeout", "ssh_timeout",
    )
    for name in numeric:
        value = getattr(config, name)
        if not isinstance(value, int | float) or isinstance(value, bool):
            errors.append(f"{name} must be a number, got {value!r}")
        elif value <= 0:
            errors.append(f"{name} must be positive")

    if not config.ssh_password and not config.ssh_private_key_file:
        errors.append("either ssh_private_key_file or ssh_password must be set")

    key_file = config.ssh_private_key_file
    if key_file and not isinstance(key_file, str):
        errors.append(f"ssh_private_key_file must be a path, got {key_file!r}")
    elif key_file and not Path(key_file).expanduser().is_file():
        errors.append(f"ssh_private_key_file '{key_file}' does not exist")

    for script in config.scripts:
        if not isinstance(script, str):
            errors.append(f"script must be a path, got {script!r}")
        elif not Path(script).expanduser().is_file():
            errors.append(f"script '{script}' does not exist")

    return errors


def prepare(raw: Mapping[str, Any], *, env: Mapping[str, str] | None = None) -> BuildConfig:
    """Apply defaults and validate a raw build mapping.

    Args:
        raw: Settings as read from a build file.
        env: Environment used for credential fallbacks. Defaults to os.environ.

    Returns:
        The validated configuration.

    Raises:
        ConfigurationError: Listing every problem found, not just the first.
    """
    env = os.environ if env is None else env
    values: RawConfig = dict(raw)
    errors: list[str] = []

    unknown = sorted(set(values) - set(_FIELDS))
    if unknown:
        errors.append(f"unknown configuration key(s): {', '.join(unknown)}")
        for key in unknown:
            values.pop(key)

    for key, var in _ENV_FALLBACKS.items():
        if not values.get(key) and env.get(var):
            values[key] = env[var]

    if not values.get("snapshot_name"):
        values["snapshot_name"] = _default_snapshot_name()

    if not values.get("debug_key_path"):
        values["debug_key_path"] = f"cloudsnap_{values['snapshot_name']}"

    for key in ("inline", "scripts"):
        if key in values:
            if isinstance(values[key], str) or not isinstance(values[key], list | tuple):
                errors.append(f"{key} must be a list of strings")
                values.pop(key)
            else:
                values[key] = tuple(values[key])

    values.setdefault("image", "")

    try:
        config = BuildConfig(**values)
    except TypeError as e:
        raise ConfigurationError([*errors, str(e)]) from e

    errors.extend(_validate(config))
    if errors:
        raise ConfigurationError(errors)

    redact(config.password, config.token, config.ssh_password)
    return config


def _read_toml(path: Path) -> RawConfig:
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(path: str | Path, *, env: Mapping[str, str] | None = None) -> BuildConfig:
    """Read and validate a TOML build file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError([f"build file '{path}' not found"])
    try:
        raw = _read_toml(path)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError([f"{path}: {e}"]) from e
    return prepare(raw, env=env)
