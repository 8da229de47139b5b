from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Protocol

import httpx

from pressr.config import RequestSpec
from pressr.metrics import ErrorKind, Outcome

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def execute(self, spec: RequestSpec) -> Outcome:
        ...


class HttpxTransport:
    """Sends a ``RequestSpec`` with a shared ``httpx.AsyncClient``.

    Connection pooling is left to httpx. The transport owns the client it
    creates and closes it on exit; an injected client is left open.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def execute(self, spec: RequestSpec) -> Outcome:
        start = time.perf_counter()
        try:
            resp = await self._client.request(
                spec.method,
                spec.url,
                headers=dict(spec.headers),
                content=spec.body,
                timeout=spec.timeout_sec,
            )
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            logger.debug("%s %s -> %d in %.2f ms", spec.method, spec.url, resp.status_code, elapsed_ms)
            return Outcome.response(resp.status_code, elapsed_ms, len(resp.content or b""))
        except httpx.TimeoutException as exc:
            err, message = ErrorKind.TIMEOUT, str(exc)
        except httpx.ConnectError as exc:
            err, message = ErrorKind.CONNECTION_FAILED, str(exc)
        except (httpx.ProtocolError, httpx.DecodingError) as exc:
            err, message = ErrorKind.INVALID_RESPONSE, str(exc)
        except httpx.NetworkError as exc:
            err, message = ErrorKind.CONNECTION_FAILED, str(exc)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            err, message = ErrorKind.OTHER, str(exc) or type(exc).__name__
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("%s %s failed with %s in %.2f ms", spec.method, spec.url, err.value, elapsed_ms)
        return Outcome.failure(err, elapsed_ms, message)
