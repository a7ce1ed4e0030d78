"""
Response normalization for partner payloads.

The partner answers with ``{"rCode", "rMessage", "data"}`` where ``data`` is
either a bare product list (search, goldbox, catalogPL, recommendation, and
the deeplink link list) or an object holding ``landingUrl`` and a nested
``productData`` list. The shape is resolved once, in ``classify``, into a
tagged PartnerPayload; everything downstream works on that.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from partner_discovery.models.schemas import (
    SUCCESS_CODE,
    DeeplinkLink,
    DiscoveryResult,
    Operation,
    Product,
)
from partner_discovery.utils.errors import PartnerTransportError
from partner_discovery.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SUCCESS_MESSAGE = "OK"
NUMERIC_NOISE_PATTERN = re.compile(r"[,\s]")


class PayloadShape(str, Enum):
    """Which success shape the partner's ``data`` field had."""
    LIST = "list"
    OBJECT = "object"
    EMPTY = "empty"


@dataclass(frozen=True)
class PartnerPayload:
    """A partner payload with its data shape resolved."""
    result_code: str
    message: str
    shape: PayloadShape
    items: list[dict[str, Any]] = field(default_factory=list)
    landing_url: Optional[str] = None


# =============================================================================
# Field coercion
# =============================================================================

def _as_int(value: Any) -> int:
    """Integer value of a partner field; anything unreadable is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        if isinstance(value, (int, float)):
            return int(value)
        cleaned = NUMERIC_NOISE_PATTERN.sub("", str(value))
    except (ValueError, OverflowError):
        return 0
    # Exact for integer text; float() would round IDs above 2**53
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        return int(float(cleaned))
    except (ValueError, OverflowError):
        return 0


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "y", "yes")
    return bool(value)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _as_optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ResponseNormalizer:
    """Collapses both partner success shapes into one DiscoveryResult."""

    def classify(self, payload: Any) -> PartnerPayload:
        """
        Resolve the payload's shape.

        Raises:
            PartnerTransportError: The payload is not a partner envelope.
        """
        if not isinstance(payload, dict) or "rCode" not in payload:
            raise PartnerTransportError(
                f"Unexpected partner response shape: {type(payload).__name__}"
            )

        result_code = _as_text(payload.get("rCode")).strip()
        message = _as_text(payload.get("rMessage")).strip()
        data = payload.get("data")

        if isinstance(data, list):
            items = [item for item in data if isinstance(item, dict)]
            return PartnerPayload(result_code, message, PayloadShape.LIST, items)

        if isinstance(data, dict):
            nested = data.get("productData")
            items = [item for item in nested if isinstance(item, dict)] if isinstance(nested, list) else []
            return PartnerPayload(
                result_code,
                message,
                PayloadShape.OBJECT,
                items,
                landing_url=_as_optional_text(data.get("landingUrl")),
            )

        return PartnerPayload(result_code, message, PayloadShape.EMPTY)

    def normalize(self, payload: Any, operation: Operation | str) -> DiscoveryResult:
        """Normalize a raw partner payload for the given operation."""
        partner = self.classify(payload)
        operation = Operation(operation)

        if partner.result_code != SUCCESS_CODE:
            logger.info(
                "Partner reported failure",
                operation=operation.value,
                result_code=partner.result_code,
                partner_message=partner.message,
            )
            return DiscoveryResult(
                result_code=partner.result_code,
                message=partner.message or f"Partner request failed (rCode={partner.result_code or 'missing'})",
            )

        message = partner.message or DEFAULT_SUCCESS_MESSAGE

        if operation is Operation.DEEPLINK:
            links = [self._to_link(item) for item in partner.items]
            # One URL goes in per request, so only the first link is the answer
            shorten_url = links[0].shorten_url if links else None
            return DiscoveryResult(
                result_code=partner.result_code,
                message=message,
                links=links,
                shorten_url=shorten_url,
            )

        products = [self._to_product(item, idx) for idx, item in enumerate(partner.items)]
        logger.debug(
            "Normalized partner payload",
            operation=operation.value,
            shape=partner.shape.value,
            products=len(products),
        )
        return DiscoveryResult(
            result_code=partner.result_code,
            message=message,
            landing_url=partner.landing_url,
            products=products,
        )

    @staticmethod
    def _to_product(item: dict[str, Any], idx: int) -> Product:
        rank = _as_int(item.get("rank"))
        return Product(
            product_id=_as_int(item.get("productId")),
            product_name=_as_text(item.get("productName")),
            product_price=max(0, _as_int(item.get("productPrice"))),
            product_image=_as_text(item.get("productImage")),
            product_url=_as_text(item.get("productUrl")),
            is_rocket=_as_bool(item.get("isRocket")),
            is_free_shipping=_as_bool(item.get("isFreeShipping")),
            category_name=_as_optional_text(item.get("categoryName")),
            keyword=_as_optional_text(item.get("keyword")),
            rank=rank if rank > 0 else idx + 1,
        )

    @staticmethod
    def _to_link(item: dict[str, Any]) -> DeeplinkLink:
        return DeeplinkLink(
            original_url=_as_optional_text(item.get("originalUrl")),
            shorten_url=_as_optional_text(item.get("shortenUrl")),
            landing_url=_as_optional_text(item.get("landingUrl")),
        )
