"""Async HTTP transport for the provider API.

One aiohttp session bound to an API base URL. Credentials are attached to
every request and non-2xx answers become ``HttpError``. Provider mutations
answer 202 with a ``Location`` header, so responses keep their headers next
to the decoded body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

import aiohttp
from loguru import logger

type Method = Literal["GET", "POST", "DELETE"]
type JsonBody = dict[str, Any] | list[Any]

ERROR_PREVIEW = 500

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """A non-success answer, or status 0 when no answer arrived."""

    status: int
    body: str

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"


# ─── Response ────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Response[T]:
    status: int
    data: T
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == wanted), None)


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    async def headers(self) -> dict[str, str]: ...


@dataclass(frozen=True, slots=True)
class BasicAuth:
    """Account username and password."""

    username: str
    password: str = field(repr=False)

    async def headers(self) -> dict[str, str]:
        encoded = aiohttp.BasicAuth(self.username, self.password).encode()
        return {"Authorization": encoded, "Accept": "application/json"}


@dataclass(frozen=True, slots=True)
class BearerAuth:
    """API token."""

    token: str = field(repr=False)

    async def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Accept": "application/json"}


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """Session-per-client JSON transport.

    Paths are joined to ``base_url``. Absolute URLs, such as the request
    status handles the provider hands back, are used unchanged.

    Example:
        async with HttpClient("https://api.example.com/v6", BearerAuth(token)) as http:
            resp = await http.get("/datacenters", response_type=dict)
    """

    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.default_headers = dict(default_headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    def resolve(self, path: str) -> str:
        if "://" in path:
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return self.base_url + path

    async def _open(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout, headers=self.default_headers,
            )
        return self._session

    async def request[T](
        self,
        method: Method,
        path: str,
        *,
        response_type: type[T],
        json: JsonBody | None = None,
        data: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Response[T]:
        """Send one request and decode the JSON answer.

        ``response_type`` only drives static typing; the body is not validated.
        An empty body decodes to None.

        Raises:
            HttpError: Status >= 300, an undecodable body, or the request
                failed in transit or timed out (status 0).
        """
        session = await self._open()
        headers = await self.auth.headers() if self.auth else {}
        url = self.resolve(path)
        self._log.debug("{method} {url}", method=method, url=url)

        try:
            async with session.request(
                method, url, headers=headers, json=json, data=data, params=params,
            ) as resp:
                raw = await resp.read()
                if resp.status >= 300:
                    body = raw.decode(errors="replace")
                    self._log.warning(
                        "{method} {url} answered {status}: {body}",
                        method=method, url=url, status=resp.status, body=body[:ERROR_PREVIEW],
                    )
                    raise HttpError(status=resp.status, body=body)
                try:
                    payload = await resp.json(content_type=None) if raw else None
                except ValueError as e:
                    raise HttpError(status=resp.status, body=f"invalid JSON: {e}") from e
                return Response(status=resp.status, data=payload, headers=dict(resp.headers))
        except aiohttp.ClientError as e:
            raise HttpError(status=getattr(e, "status", 0), body=str(e)) from e
        except TimeoutError as e:
            raise HttpError(status=0, body=f"timeout after {self.timeout.total}s: {method} {url}") from e

    async def get[T](
        self, path: str, *, params: dict[str, Any] | None = None, response_type: type[T],
    ) -> Response[T]:
        return await self.request("GET", path, params=params, response_type=response_type)

    async def post[T](
        self,
        path: str,
        *,
        json: JsonBody | None = None,
        data: dict[str, str] | None = None,
        response_type: type[T],
    ) -> Response[T]:
        """POST a JSON body (``json=``) or a urlencoded form (``data=``)."""
        return await self.request("POST", path, json=json, data=data, response_type=response_type)

    async def delete[T](self, path: str, *, response_type: type[T]) -> Response[T]:
        return await self.request("DELETE", path, response_type=response_type)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpClient:
        await self._open()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
