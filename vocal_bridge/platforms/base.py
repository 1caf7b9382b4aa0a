"""
Shared async HTTP plumbing for platform clients.

Tokens are caller-supplied and forwarded verbatim as bearer credentials.
There is no retry policy: a failed call surfaces as PlatformAPIError with
the platform's own message.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from vocal_bridge.core.errors import InvalidArgument, PlatformAPIError

logger = logging.getLogger("VocalBridge.Platforms")


def _normalize_base_url(base_url: str) -> str:
    value = base_url.rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid platform base URL: {base_url!r}")
    return value


def _coerce_error_detail(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail", "msg"):
            detail = payload.get(key)
            if isinstance(detail, str) and detail:
                return detail
            if detail is not None:
                try:
                    return json.dumps(detail, sort_keys=True)
                except (TypeError, ValueError):
                    return str(detail)
    if isinstance(payload, str) and payload:
        return payload
    return fallback


class PlatformClient:
    """Base async client; subclasses set platform and default headers."""

    platform = "platform"

    def __init__(
        self,
        token: str,
        *,
        base_url: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not isinstance(token, str) or not token.strip():
            raise InvalidArgument("token", f"{self.platform} API token is required")
        self.token = token
        self.base_url = _normalize_base_url(base_url)
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PlatformClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def _error_message(self, payload: Any, status_code: int) -> str:
        return _coerce_error_detail(payload, f"{self.platform} API error: HTTP {status_code}")

    async def _request(
        self,
        method: str,
        path: str = "",
        *,
        json_body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self._url(path)
        try:
            response = await self._client.request(
                method=method,
                url=url,
                json=json_body,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise PlatformAPIError(
                f"Failed to reach {self.platform} API: {exc}",
                platform=self.platform,
            ) from exc

        if response.status_code == 204:
            return {"success": True}

        if response.content:
            try:
                payload: Any = response.json()
            except ValueError:
                payload = response.text
        else:
            payload = {}

        if response.status_code >= 400:
            detail = self._error_message(payload, response.status_code)
            logger.info(
                "%s API %s %s -> %d: %s",
                self.platform,
                method,
                path or "/",
                response.status_code,
                detail,
            )
            raise PlatformAPIError(
                detail,
                platform=self.platform,
                status_code=response.status_code,
                payload=payload,
            )
        return payload
