"""
baton/models/providers/http.py

Shared transport for the HTTP completion backends.

One httpx.AsyncClient per provider instance, created lazily. Timeouts,
connection failures, 429 and 5xx responses are retried with exponential
backoff; everything else fails at once. Raw httpx errors never leave this
module: they are wrapped in ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from baton.config import ProviderConfig
from baton.errors import ProviderError
from baton.interfaces import CompletionProvider

logger = logging.getLogger(__name__)


class HTTPCompletionProvider(CompletionProvider):
    """Base class holding the client, headers and retry policy."""

    name = "http"

    def __init__(
        self,
        config: ProviderConfig,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_s: float = 0.5,
    ) -> None:
        self._config = config
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._backoff_s = backoff_s
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", **self._config.extra_headers}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers(),
                timeout=self._config.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = self._get_client()
        attempts = self._config.max_retries + 1
        for attempt in range(attempts):
            try:
                resp = await client.post(path, json=payload)
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                retryable = status == 429 or status >= 500
                error = ProviderError(
                    provider=self.name,
                    operation="complete",
                    reason=f"HTTP {status}: {_error_body(e.response)}",
                    original=e,
                    retryable=retryable,
                )
            except (httpx.TimeoutException, httpx.TransportError) as e:
                error = ProviderError(
                    provider=self.name,
                    operation="complete",
                    original=e,
                    retryable=True,
                )
            except ValueError as e:
                raise ProviderError(
                    provider=self.name,
                    operation="complete",
                    reason=f"invalid JSON response: {e}",
                    original=e,
                ) from e

            if not error.retryable or attempt == attempts - 1:
                raise error from error.original
            delay = self._backoff_s * (2 ** attempt)
            logger.warning(
                "%s request failed (%s), retry %d/%d in %.2fs",
                self.name,
                error.reason,
                attempt + 1,
                attempts - 1,
                delay,
            )
            await asyncio.sleep(delay)

        raise ProviderError(provider=self.name, operation="complete", reason="no attempts made")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r})"


def _error_body(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or err)
        if err:
            return str(err)
    return str(data)[:200]
