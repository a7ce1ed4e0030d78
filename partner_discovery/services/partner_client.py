"""
Partner client adapter for the Coupang Partners Open API.

The gateway only depends on the PartnerClient protocol: five async calls that
return the partner's raw ``{"rCode", "rMessage", "data"}`` envelope or raise
PartnerTransportError. CoupangPartnersClient is the production implementation
over httpx with HMAC-SHA256 request signing.

Example:
    >>> async with CoupangPartnersClient(settings) as client:
    ...     payload = await client.search("iphone", limit=5, image_size="230x230")
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any, Callable, Optional, Protocol
from urllib.parse import urlencode

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.utils.errors import PartnerTransportError
from partner_discovery.utils.logger import get_logger

logger = get_logger(__name__)

API_PREFIX = "/v2/providers/affiliate_open_api/apis/openapi"
SEARCH_PATH = f"{API_PREFIX}/products/search"
GOLDBOX_PATH = f"{API_PREFIX}/products/goldbox"
CATALOG_PL_PATH = f"{API_PREFIX}/products/coupangPL"
RECOMMENDATION_PATH = f"{API_PREFIX}/products/reco"
DEEPLINK_PATH = f"{API_PREFIX}/v1/deeplink"

SIGNATURE_ALGORITHM = "HmacSHA256"

Payload = dict[str, Any]


class PartnerClient(Protocol):
    """Call boundary to the partner API."""

    async def search(self, keyword: str, *, limit: int, image_size: str) -> Payload:
        ...

    async def goldbox(self, *, sub_id: Optional[str], image_size: str) -> Payload:
        ...

    async def catalog_pl(self, *, limit: int, sub_id: Optional[str], image_size: str) -> Payload:
        ...

    async def recommendation(
        self, device_id: str, *, sub_id: Optional[str], image_size: str
    ) -> Payload:
        ...

    async def deeplink(self, urls: list[str], *, sub_id: Optional[str]) -> Payload:
        ...


# =============================================================================
# Request signing
# =============================================================================

def signed_date(now: Optional[time.struct_time] = None) -> str:
    """UTC timestamp in the partner's ``yyMMddTHHmmssZ`` format."""
    return time.strftime("%y%m%dT%H%M%SZ", now or time.gmtime())


def sign_request(
    method: str,
    path: str,
    query: str,
    access_key: str,
    secret_key: str,
    now: Optional[time.struct_time] = None,
) -> str:
    """
    Build the ``Authorization`` header value for one request.

    The signed message is ``signed-date + METHOD + path + query`` where query
    is the encoded query string without the leading ``?``.
    """
    date = signed_date(now)
    message = f"{date}{method.upper()}{path}{query}"
    signature = hmac.new(
        secret_key.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return (
        f"CEA algorithm={SIGNATURE_ALGORITHM}, access-key={access_key}, "
        f"signed-date={date}, signature={signature}"
    )


def _compact(params: dict[str, Any]) -> dict[str, Any]:
    """Drop unset parameters; the partner treats empty values as invalid."""
    return {k: v for k, v in params.items() if v is not None and v != ""}


# =============================================================================
# Coupang Partners client
# =============================================================================

class CoupangPartnersClient:
    """
    httpx client for the Coupang Partners Open API.

    Transient transport failures (timeouts, connection errors) are retried
    here with exponential backoff; every other failure surfaces as
    PartnerTransportError on the first occurrence.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], time.struct_time] = time.gmtime,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None
        self._request_count = 0
        self._error_count = 0

    async def connect(self) -> None:
        """Initialize HTTP client."""
        if self._client is None:
            timeout = float(self.settings.request_timeout_seconds)
            self._client = httpx.AsyncClient(
                base_url=self.settings.coupang_api_base_url,
                timeout=httpx.Timeout(timeout, connect=min(10.0, timeout)),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                transport=self._transport,
            )

    async def disconnect(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CoupangPartnersClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def _credentials(self) -> tuple[str, str]:
        if not self.settings.is_configured:
            raise PartnerTransportError(
                "Partner credentials are not configured "
                "(COUPANG_ACCESS_KEY / COUPANG_SECRET_KEY)"
            )
        return (
            self.settings.coupang_access_key.get_secret_value(),
            self.settings.coupang_secret_key.get_secret_value(),
        )

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        access_key, secret_key = self._credentials()
        if not self._client:
            await self.connect()

        query = urlencode(_compact(params or {}))
        url = f"{path}?{query}" if query else path

        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
            stop=stop_after_attempt(self.settings.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                # Signed date is part of the signature, so re-sign every attempt
                headers = {
                    "Authorization": sign_request(
                        method, path, query, access_key, secret_key, self._clock()
                    ),
                    "Content-Type": "application/json;charset=UTF-8",
                }
                return await self._client.request(
                    method,
                    url,
                    headers=headers,
                    content=json.dumps(body) if body is not None else None,
                )
        raise PartnerTransportError("Partner request was not attempted")

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Payload:
        self._request_count += 1
        start_time = time.time()
        try:
            response = await self._send(method, path, params, body)
        except httpx.HTTPError as e:
            self._error_count += 1
            logger.error("Partner request failed", path=path, error=str(e))
            raise PartnerTransportError(f"Partner API unreachable: {e}") from e

        duration_ms = int((time.time() - start_time) * 1000)

        if response.status_code >= 400:
            self._error_count += 1
            error_msg = f"Partner API HTTP {response.status_code}: {response.text[:200]}"
            logger.error("Partner API error", path=path, status=response.status_code)
            raise PartnerTransportError(error_msg, status=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            self._error_count += 1
            raise PartnerTransportError(
                f"Partner API returned non-JSON body: {response.text[:200]}",
                status=response.status_code,
            ) from e

        logger.info(
            "Partner request completed",
            path=path,
            status=response.status_code,
            result_code=payload.get("rCode") if isinstance(payload, dict) else None,
            duration_ms=duration_ms,
        )
        return payload

    # =========================================================================
    # Partner operations
    # =========================================================================

    async def search(self, keyword: str, *, limit: int, image_size: str) -> Payload:
        return await self._request(
            "GET",
            SEARCH_PATH,
            params={"keyword": keyword, "limit": limit, "imageSize": image_size},
        )

    async def goldbox(self, *, sub_id: Optional[str], image_size: str) -> Payload:
        return await self._request(
            "GET",
            GOLDBOX_PATH,
            params={"subId": sub_id, "imageSize": image_size},
        )

    async def catalog_pl(self, *, limit: int, sub_id: Optional[str], image_size: str) -> Payload:
        return await self._request(
            "GET",
            CATALOG_PL_PATH,
            params={"limit": limit, "subId": sub_id, "imageSize": image_size},
        )

    async def recommendation(
        self, device_id: str, *, sub_id: Optional[str], image_size: str
    ) -> Payload:
        return await self._request(
            "GET",
            RECOMMENDATION_PATH,
            params={"deviceId": device_id, "subId": sub_id, "imageSize": image_size},
        )

    async def deeplink(self, urls: list[str], *, sub_id: Optional[str]) -> Payload:
        return await self._request(
            "POST",
            DEEPLINK_PATH,
            body=_compact({"coupangUrls": list(urls), "subId": sub_id}),
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "base_url": self.settings.coupang_api_base_url,
            "configured": self.settings.is_configured,
            "request_count": self._request_count,
            "error_count": self._error_count,
        }
