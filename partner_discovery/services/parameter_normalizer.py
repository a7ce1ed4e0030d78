"""
Parameter normalization for the five discovery operations.

Raw parameters arrive as text (HTTP query strings, CLI options). Each
operation has one normalizer method that fills defaults and rejects a missing
required field with ValidationError before any partner call is made.
"""

import re
from typing import Any, Callable, Mapping, Optional

from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.models.schemas import (
    CATALOG_PL_IMAGE_SIZES,
    GOLDBOX_IMAGE_SIZES,
    RECOMMENDATION_IMAGE_SIZES,
    SEARCH_IMAGE_SIZES,
    CatalogPLRequest,
    DeeplinkRequest,
    GoldBoxRequest,
    Operation,
    OperationRequest,
    RecommendationRequest,
    SearchRequest,
)
from partner_discovery.utils.errors import ValidationError
from partner_discovery.utils.logger import get_logger

logger = get_logger(__name__)

RawParams = Mapping[str, Any]

SEARCH_DEFAULT_LIMIT = 10
CATALOG_PL_DEFAULT_LIMIT = 20

# Leading integer, the way a browser's parseInt reads "12abc" as 12
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def parse_limit(raw: Any, default: int) -> int:
    """Read an integer limit from text; fall back to ``default`` silently."""
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    match = LEADING_INT_PATTERN.match(str(raw))
    if not match:
        return default
    return int(match.group(1))


def _text(params: RawParams, key: str) -> Optional[str]:
    """Stripped text value, or None when absent or blank."""
    value = params.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ParameterNormalizer:
    """Per-operation validation and defaulting of request parameters."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._dispatch: dict[Operation, Callable[[RawParams], OperationRequest]] = {
            Operation.SEARCH: self.normalize_search,
            Operation.GOLDBOX: self.normalize_goldbox,
            Operation.CATALOG_PL: self.normalize_catalog_pl,
            Operation.RECOMMENDATION: self.normalize_recommendation,
            Operation.DEEPLINK: self.normalize_deeplink,
        }

    def normalize(self, operation: Operation | str, params: RawParams) -> OperationRequest:
        """Dispatch on the explicit operation tag."""
        try:
            op = Operation(operation)
        except ValueError:
            raise ValidationError(f"Unknown operation: {operation}", field="operation")
        return self._dispatch[op](params)

    def _image_size(self, params: RawParams, default: str, known: tuple[str, ...]) -> str:
        size = _text(params, "imageSize") or default
        if size not in known:
            # Forwarded as-is; the partner decides whether it is acceptable
            logger.debug("Unrecognized image size", image_size=size, known=list(known))
        return size

    def normalize_search(self, params: RawParams) -> SearchRequest:
        keyword = _text(params, "keyword")
        if not keyword:
            raise ValidationError("Keyword is required", field="keyword")
        return SearchRequest(
            keyword=keyword,
            limit=parse_limit(params.get("limit"), SEARCH_DEFAULT_LIMIT),
            image_size=self._image_size(params, "230x230", SEARCH_IMAGE_SIZES),
        )

    def normalize_goldbox(self, params: RawParams) -> GoldBoxRequest:
        return GoldBoxRequest(
            sub_id=_text(params, "subId"),
            image_size=self._image_size(params, "230x230", GOLDBOX_IMAGE_SIZES),
        )

    def normalize_catalog_pl(self, params: RawParams) -> CatalogPLRequest:
        return CatalogPLRequest(
            limit=parse_limit(params.get("limit"), CATALOG_PL_DEFAULT_LIMIT),
            sub_id=_text(params, "subId") or self.settings.default_sub_id,
            image_size=self._image_size(params, "512x512", CATALOG_PL_IMAGE_SIZES),
        )

    def normalize_recommendation(self, params: RawParams) -> RecommendationRequest:
        device_id = _text(params, "deviceId")
        if not device_id:
            raise ValidationError("Device ID is required", field="deviceId")
        return RecommendationRequest(
            device_id=device_id,
            sub_id=_text(params, "subId"),
            image_size=self._image_size(params, "512x512", RECOMMENDATION_IMAGE_SIZES),
        )

    def normalize_deeplink(self, params: RawParams) -> DeeplinkRequest:
        url = _text(params, "url")
        if not url:
            raise ValidationError("URL parameter is required", field="url")
        sub_id = _text(params, "subId")
        if sub_id is None and self.settings.deeplink_use_default_sub_id:
            sub_id = self.settings.default_sub_id
        return DeeplinkRequest(url=url, sub_id=sub_id)
