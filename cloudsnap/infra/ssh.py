"""Remote sessions on the build server.

``Communicator`` is what build steps depend on: start a command, wait for
its exit status, copy a file over. ``SSHTransport`` is the asyncssh-backed
implementation used against real servers.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, runtime_checkable

import asyncssh
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

CLOSE_TIMEOUT = 5.0


class CommandResult(NamedTuple):
    exit_status: int
    stdout: str
    stderr: str


@runtime_checkable
class Communicator(Protocol):
    async def connect(self) -> None: ...

    async def run(self, command: str, *, timeout: float | None = None) -> CommandResult: ...

    async def upload(self, local: str, remote: str) -> None: ...

    async def close(self) -> None: ...


@dataclass
class SSHTransport:
    """asyncssh session to a freshly provisioned server.

    A new server boots for a while before sshd answers, so ``connect`` keeps
    retrying refused or reset connections every ``retry_delay`` seconds
    until ``retry_timeout`` has passed. Host keys are not checked: the host
    was created moments ago by this build and has no known key.

    Example:
        >>> async with SSHTransport(host="203.0.113.10", user="root", password="...") as ssh:
        ...     result = await ssh.run("uname -a")
    """

    host: str
    user: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    private_key: str | None = field(default=None, repr=False)
    connect_timeout: float = 30.0
    retry_timeout: float = 300.0
    retry_delay: float = 2.0

    _conn: asyncssh.SSHClientConnection | None = field(default=None, init=False, repr=False)

    def _client_keys(self) -> list[asyncssh.SSHKey]:
        if not self.private_key:
            return []
        return [asyncssh.import_private_key(self.private_key)]

    async def connect(self) -> None:
        if self._conn is not None:
            return

        log = logger.bind(component="ssh", host=self.host)
        options = dict(
            port=self.port,
            username=self.user,
            password=self.password,
            client_keys=self._client_keys(),
            known_hosts=None,
            connect_timeout=self.connect_timeout,
        )

        @retry(
            stop=stop_after_delay(self.retry_timeout),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type((OSError, asyncssh.Error)),
            reraise=True,
        )
        async def attempt() -> asyncssh.SSHClientConnection:
            log.debug("ssh {user}@{host}:{port}", user=self.user, host=self.host, port=self.port)
            return await asyncssh.connect(self.host, **options)

        self._conn = await attempt()
        log.info("ssh session open")

    @property
    def connection(self) -> asyncssh.SSHClientConnection:
        if self._conn is None:
            raise ConnectionError(f"no ssh session to {self.host}; call connect() first")
        return self._conn

    async def run(self, command: str, *, timeout: float | None = None) -> CommandResult:
        """Run a shell command and wait for it to exit.

        A command killed by a signal, or one that never reported a status,
        yields a negative exit status.
        """
        completed = await self.connection.run(command, timeout=timeout, check=False)
        status = completed.returncode if completed.returncode is not None else -1
        return CommandResult(status, str(completed.stdout or ""), str(completed.stderr or ""))

    async def upload(self, local: str, remote: str) -> None:
        await asyncssh.scp(local, (self.connection, remote))

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        conn.close()
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(conn.wait_closed(), timeout=CLOSE_TIMEOUT)

    async def __aenter__(self) -> SSHTransport:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()
