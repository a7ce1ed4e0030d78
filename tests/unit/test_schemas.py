import pytest
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from partner_discovery.models.schemas import (
    CatalogPLRequest,
    DeeplinkLink,
    DeviceIdentity,
    DeviceIdMethod,
    DiscoveryResult,
    Operation,
    OperationRequest,
    Product,
    RecommendationRequest,
    SearchRequest,
)


def test_product_defaults():
    product = Product()
    assert product.product_id == 0
    assert product.product_price == 0
    assert product.is_rocket is False
    assert product.rank is None


def test_product_rejects_negative_price():
    with pytest.raises(PydanticValidationError):
        Product(product_price=-1)


def test_product_is_immutable():
    product = Product(product_id=1)
    with pytest.raises(PydanticValidationError):
        product.product_id = 2


def test_product_accepts_camel_case():
    product = Product.model_validate({"productId": 5, "isFreeShipping": True, "rank": 1})
    assert product.product_id == 5
    assert product.is_free_shipping is True


def test_failure_result_cannot_carry_products():
    with pytest.raises(PydanticValidationError):
        DiscoveryResult(result_code="400", message="bad", products=[Product()])
    with pytest.raises(PydanticValidationError):
        DiscoveryResult(result_code="1", message="bad", links=[DeeplinkLink(shorten_url="https://x")])


def test_result_message_required():
    with pytest.raises(PydanticValidationError):
        DiscoveryResult(result_code="0", message="")


def test_result_json_roundtrip():
    result = DiscoveryResult(
        result_code="0",
        message="OK",
        shorten_url="https://link.coupang.com/a/x",
        links=[DeeplinkLink(original_url="https://www.coupang.com/vp/products/1", shorten_url="https://link.coupang.com/a/x")],
    )
    assert '"shortenUrl"' in result.to_json()
    assert DiscoveryResult.from_json(result.to_json()) == result
    assert result.is_success is True


def test_device_identity_serializes_method_value():
    identity = DeviceIdentity(token="abcd1234", method=DeviceIdMethod.FINGERPRINT)
    assert identity.to_dict() == {"token": "abcd1234", "method": "fingerprint"}


def test_operation_request_discriminates_on_tag():
    adapter = TypeAdapter(OperationRequest)
    assert isinstance(adapter.validate_python({"operation": "catalogPL"}), CatalogPLRequest)
    request = adapter.validate_python({"operation": "recommendation", "deviceId": "d1"})
    assert isinstance(request, RecommendationRequest)
    assert request.image_size == "512x512"


def test_request_variants_enforce_required_fields():
    with pytest.raises(PydanticValidationError):
        SearchRequest(keyword="")
    with pytest.raises(PydanticValidationError):
        RecommendationRequest(device_id="")


def test_operation_values():
    assert [op.value for op in Operation] == ["search", "goldbox", "catalogPL", "recommendation", "deeplink"]
