"""
Discovery gateway.

Orchestrates one discovery operation end to end:

    raw params -> ParameterNormalizer -> PartnerClient -> ResponseNormalizer

The partner client is injected, never created at module scope, so tests and
the CLI can hand in their own. The gateway makes exactly one partner call per
operation, never retries, and sets no timeout of its own.

Example:
    >>> async with CoupangPartnersClient() as client:
    ...     gateway = DiscoveryGateway(client)
    ...     result = await gateway.discover("search", {"keyword": "phone", "limit": "5"})
"""

import time
from typing import Any, Awaitable, Callable, Optional

from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.models.schemas import (
    CatalogPLRequest,
    DeeplinkRequest,
    DeviceIdentity,
    DiscoveryResult,
    GoldBoxRequest,
    Operation,
    OperationRequest,
    RecommendationRequest,
    SearchRequest,
)
from partner_discovery.services.parameter_normalizer import ParameterNormalizer, RawParams
from partner_discovery.services.partner_client import PartnerClient
from partner_discovery.services.response_normalizer import ResponseNormalizer
from partner_discovery.utils.errors import PartnerTransportError
from partner_discovery.utils.logger import LogContext, get_logger

logger = get_logger(__name__)


class DiscoveryGateway:
    """Public contract of the five discovery operations."""

    def __init__(
        self,
        client: PartnerClient,
        settings: Optional[Settings] = None,
        parameter_normalizer: Optional[ParameterNormalizer] = None,
        response_normalizer: Optional[ResponseNormalizer] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.parameter_normalizer = parameter_normalizer or ParameterNormalizer(self.settings)
        self.response_normalizer = response_normalizer or ResponseNormalizer()
        self._handlers: dict[Operation, Callable[[Any], Awaitable[DiscoveryResult]]] = {
            Operation.SEARCH: self.search,
            Operation.GOLDBOX: self.goldbox,
            Operation.CATALOG_PL: self.catalog_pl,
            Operation.RECOMMENDATION: self.recommendation,
            Operation.DEEPLINK: self.deeplink,
        }

    async def discover(
        self,
        operation: Operation | str,
        params: RawParams,
        device_identity: Optional[DeviceIdentity] = None,
    ) -> DiscoveryResult:
        """
        Normalize raw parameters and run the operation.

        For recommendation, a blank ``deviceId`` is filled from
        ``device_identity`` when one is supplied.

        Raises:
            ValidationError: A required parameter is missing.
            PartnerTransportError: The partner call failed.
        """
        if (
            device_identity is not None
            and operation == Operation.RECOMMENDATION
            and not str(params.get("deviceId") or "").strip()
        ):
            params = {**params, "deviceId": device_identity.token}

        request = self.parameter_normalizer.normalize(operation, params)
        return await self.execute(request)

    async def execute(self, request: OperationRequest) -> DiscoveryResult:
        """Run an already-normalized request, dispatching on its tag."""
        return await self._handlers[Operation(request.operation)](request)

    # =========================================================================
    # Operations
    # =========================================================================

    async def search(self, request: SearchRequest) -> DiscoveryResult:
        return await self._call(
            Operation.SEARCH,
            lambda: self.client.search(
                request.keyword, limit=request.limit, image_size=request.image_size
            ),
            keyword=request.keyword,
            limit=request.limit,
        )

    async def goldbox(self, request: GoldBoxRequest) -> DiscoveryResult:
        return await self._call(
            Operation.GOLDBOX,
            lambda: self.client.goldbox(sub_id=request.sub_id, image_size=request.image_size),
        )

    async def catalog_pl(self, request: CatalogPLRequest) -> DiscoveryResult:
        return await self._call(
            Operation.CATALOG_PL,
            lambda: self.client.catalog_pl(
                limit=request.limit, sub_id=request.sub_id, image_size=request.image_size
            ),
            limit=request.limit,
        )

    async def recommendation(self, request: RecommendationRequest) -> DiscoveryResult:
        return await self._call(
            Operation.RECOMMENDATION,
            lambda: self.client.recommendation(
                request.device_id, sub_id=request.sub_id, image_size=request.image_size
            ),
        )

    async def deeplink(self, request: DeeplinkRequest) -> DiscoveryResult:
        return await self._call(
            Operation.DEEPLINK,
            lambda: self.client.deeplink([request.url], sub_id=request.sub_id),
        )

    async def _call(
        self,
        operation: Operation,
        invoke: Callable[[], Awaitable[Any]],
        **log_fields: Any,
    ) -> DiscoveryResult:
        with LogContext(operation=operation.value):
            start_time = time.time()
            try:
                payload = await invoke()
            except PartnerTransportError:
                logger.error("Partner transport failure", **log_fields)
                raise
            except Exception as e:
                logger.error("Partner client raised", error=str(e), **log_fields)
                raise PartnerTransportError(str(e) or type(e).__name__) from e

            result = self.response_normalizer.normalize(payload, operation)
            logger.info(
                "Discovery completed",
                result_code=result.result_code,
                products=len(result.products),
                duration_ms=int((time.time() - start_time) * 1000),
                **log_fields,
            )
            return result
