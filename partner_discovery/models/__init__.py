"""Data models module for the Partner Product Discovery Gateway."""

from partner_discovery.models.schemas import (
    # Base Models
    BaseModel,

    # Enums and constants
    Operation,
    DeviceIdMethod,
    SUCCESS_CODE,
    SEARCH_IMAGE_SIZES,
    GOLDBOX_IMAGE_SIZES,
    CATALOG_PL_IMAGE_SIZES,
    RECOMMENDATION_IMAGE_SIZES,

    # Result Models
    Product,
    DeeplinkLink,
    DiscoveryResult,
    DeviceIdentity,

    # Request Models
    SearchRequest,
    GoldBoxRequest,
    CatalogPLRequest,
    RecommendationRequest,
    DeeplinkRequest,
    OperationRequest,
)

__all__ = [
    "BaseModel",
    "Operation",
    "DeviceIdMethod",
    "SUCCESS_CODE",
    "SEARCH_IMAGE_SIZES",
    "GOLDBOX_IMAGE_SIZES",
    "CATALOG_PL_IMAGE_SIZES",
    "RECOMMENDATION_IMAGE_SIZES",
    "Product",
    "DeeplinkLink",
    "DiscoveryResult",
    "DeviceIdentity",
    "SearchRequest",
    "GoldBoxRequest",
    "CatalogPLRequest",
    "RecommendationRequest",
    "DeeplinkRequest",
    "OperationRequest",
]
