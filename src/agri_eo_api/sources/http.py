"""HTTP plumbing shared by upstream adapters."""

import logging
from typing import Any

import httpx

from agri_eo_api.sources.base import (
    AdapterError,
    AdapterTimeout,
    Empty,
    Failure,
    FailureReason,
    SourceQuery,
    SourceResult,
    Success,
    auth_headers,
)

logger = logging.getLogger(__name__)


async def request_json(
    method: str,
    url: str,
    *,
    timeout: float,
    credential: str | None = None,
    params: dict[str, Any] | None = None,
    json_body: dict[str, Any] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Issue one request and decode its JSON body.

    Raises:
        AdapterTimeout: the upstream did not answer within ``timeout``.
        AdapterError: transport failure, non-2xx status or invalid JSON.
    """
    headers = auth_headers(credential)
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
            response = await client.request(method, url, params=params, json=json_body, headers=headers)
            response.raise_for_status()
            return response.json()
    except httpx.TimeoutException as exc:
        raise AdapterTimeout(f"{method} {url} timed out after {timeout}s") from exc
    except httpx.HTTPStatusError as exc:
        raise AdapterError(f"{method} {url} returned HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise AdapterError(f"{method} {url} failed: {exc}") from exc
    except ValueError as exc:
        raise AdapterError(f"{method} {url} returned invalid JSON") from exc


class HttpSourceAdapter:
    """Base for adapters that talk to one HTTP upstream.

    Subclasses implement ``_lookup`` and either return a result or raise an
    ``AdapterError``; ``fetch`` turns raised errors into a typed ``Failure``.
    """

    kind = "http"
    quality = "real"

    def __init__(
        self,
        *,
        source_id: str,
        base_url: str,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.source_id = source_id
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def effective_timeout(self, query: SourceQuery) -> float:
        return max(0.001, min(self.timeout_seconds, query.deadline_ms / 1000.0))

    async def _request(self, method: str, url: str, query: SourceQuery, **kwargs: Any) -> Any:
        return await request_json(
            method,
            url,
            timeout=self.effective_timeout(query),
            credential=query.credential,
            transport=self._transport,
            **kwargs,
        )

    def _success(self, payload: dict[str, Any], source_label: str) -> Success:
        return Success(payload=payload, source_label=source_label, source_id=self.source_id, quality=self.quality)

    async def _lookup(self, query: SourceQuery) -> Success | Empty:
        raise NotImplementedError

    async def fetch(self, query: SourceQuery) -> SourceResult:
        try:
            return await self._lookup(query)
        except AdapterTimeout as exc:
            logger.warning("%s timed out: %s", self.source_id, exc)
            return Failure(reason=FailureReason.TIMEOUT, source_id=self.source_id, detail=str(exc))
        except AdapterError as exc:
            logger.warning("%s failed: %s", self.source_id, exc)
            return Failure(reason=FailureReason.ERROR, source_id=self.source_id, detail=str(exc))
