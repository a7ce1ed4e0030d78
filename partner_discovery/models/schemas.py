"""
Pydantic models and schemas for the Partner Product Discovery Gateway.

This module defines the uniform product model every partner payload is
normalized into, the per-operation request variants, and the device identity
used for personalization.

Models:
    - Product: One catalog item (immutable)
    - DeeplinkLink: One converted affiliate link
    - DiscoveryResult: Normalized outcome of any operation
    - DeviceIdentity: Per-browser token tagged with its generation method
    - SearchRequest / GoldBoxRequest / CatalogPLRequest /
      RecommendationRequest / DeeplinkRequest: OperationRequest variants
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Self, Union

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel

SUCCESS_CODE = "0"


# =============================================================================
# Base Configuration
# =============================================================================

class BaseModel(PydanticBaseModel):
    """Immutable base model; JSON uses the partner's camelCase field names."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        use_enum_values=True,
        alias_generator=to_camel,
        frozen=True,
    )

    def to_json(self, **kwargs) -> str:
        """Serialize model to a camelCase JSON string."""
        return self.model_dump_json(by_alias=True, indent=2, **kwargs)

    def to_dict(self, **kwargs) -> dict[str, Any]:
        """Serialize model to a camelCase dictionary."""
        return self.model_dump(by_alias=True, mode="json", **kwargs)

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        return cls.model_validate_json(json_str)


# =============================================================================
# Enums
# =============================================================================

class Operation(str, Enum):
    """Operation tags the gateway dispatches on."""
    SEARCH = "search"
    GOLDBOX = "goldbox"
    CATALOG_PL = "catalogPL"
    RECOMMENDATION = "recommendation"
    DEEPLINK = "deeplink"


class DeviceIdMethod(str, Enum):
    """How a device identity was generated."""
    RANDOM = "random"
    FINGERPRINT = "fingerprint"


# Image sizes the partner documents per operation. Values outside these sets
# are still forwarded to the partner unchanged.
SEARCH_IMAGE_SIZES = ("72x72", "120x120", "230x230", "300x300", "600x600")
GOLDBOX_IMAGE_SIZES = ("230x230", "512x512")
CATALOG_PL_IMAGE_SIZES = ("230x230", "512x512")
RECOMMENDATION_IMAGE_SIZES = ("230x230", "300x300", "512x512")


# =============================================================================
# Product Models
# =============================================================================

class Product(BaseModel):
    """One catalog item. Price is in minor currency units (KRW)."""

    product_id: int = 0
    product_name: str = ""
    product_price: int = Field(default=0, ge=0)
    product_image: str = ""
    product_url: str = ""
    is_rocket: bool = False
    is_free_shipping: bool = False
    category_name: Optional[str] = None
    keyword: Optional[str] = None
    rank: Optional[int] = Field(default=None, ge=1)


class DeeplinkLink(BaseModel):
    """A plain partner URL and its attributed short/landing forms."""

    original_url: Optional[str] = None
    shorten_url: Optional[str] = None
    landing_url: Optional[str] = None


class DiscoveryResult(BaseModel):
    """
    Normalized outcome of any discovery operation.

    A result code other than "0" is a partner-reported failure: such a result
    carries no products, links, landing URL or short URL.
    """

    result_code: str
    message: str = Field(min_length=1)
    landing_url: Optional[str] = None
    products: list[Product] = Field(default_factory=list)
    links: list[DeeplinkLink] = Field(default_factory=list)
    shorten_url: Optional[str] = None

    @model_validator(mode="after")
    def failure_carries_no_payload(self) -> "DiscoveryResult":
        if self.result_code != SUCCESS_CODE:
            if self.products or self.links or self.landing_url or self.shorten_url:
                raise ValueError(
                    f"result code {self.result_code!r} must not carry products or URLs"
                )
        return self

    @property
    def is_success(self) -> bool:
        return self.result_code == SUCCESS_CODE


class DeviceIdentity(BaseModel):
    """Per-browser token used for personalized recommendation."""

    token: str = Field(min_length=1)
    method: DeviceIdMethod


# =============================================================================
# Operation Requests
# =============================================================================

class SearchRequest(BaseModel):
    operation: Literal["search"] = "search"
    keyword: str = Field(min_length=1)
    limit: int = 10
    image_size: str = "230x230"


class GoldBoxRequest(BaseModel):
    operation: Literal["goldbox"] = "goldbox"
    sub_id: Optional[str] = None
    image_size: str = "230x230"


class CatalogPLRequest(BaseModel):
    operation: Literal["catalogPL"] = "catalogPL"
    limit: int = 20
    sub_id: Optional[str] = None
    image_size: str = "512x512"


class RecommendationRequest(BaseModel):
    operation: Literal["recommendation"] = "recommendation"
    device_id: str = Field(min_length=1)
    sub_id: Optional[str] = None
    image_size: str = "512x512"


class DeeplinkRequest(BaseModel):
    operation: Literal["deeplink"] = "deeplink"
    url: str = Field(min_length=1)
    sub_id: Optional[str] = None


OperationRequest = Annotated[
    Union[
        SearchRequest,
        GoldBoxRequest,
        CatalogPLRequest,
        RecommendationRequest,
        DeeplinkRequest,
    ],
    Field(discriminator="operation"),
]
