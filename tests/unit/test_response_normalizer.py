import pytest

from partner_discovery.models.schemas import DiscoveryResult, Operation
from partner_discovery.services.response_normalizer import PayloadShape, ResponseNormalizer
from partner_discovery.utils.errors import PartnerTransportError


@pytest.fixture
def normalizer():
    return ResponseNormalizer()


def test_classify_list_shape(normalizer, list_payload):
    partner = normalizer.classify(list_payload)
    assert partner.shape == PayloadShape.LIST
    assert len(partner.items) == 5
    assert partner.landing_url is None


def test_classify_object_shape(normalizer, object_payload):
    partner = normalizer.classify(object_payload)
    assert partner.shape == PayloadShape.OBJECT
    assert len(partner.items) == 5
    assert partner.landing_url.startswith("https://link.coupang.com/re/AFFSRP")


def test_classify_object_without_product_data(normalizer):
    partner = normalizer.classify({"rCode": "0", "data": {"landingUrl": "https://l"}})
    assert partner.shape == PayloadShape.OBJECT
    assert partner.items == []
    assert partner.landing_url == "https://l"


def test_classify_missing_data(normalizer):
    assert normalizer.classify({"rCode": "0"}).shape == PayloadShape.EMPTY


@pytest.mark.parametrize("payload", [None, [], "oops", {"data": []}])
def test_classify_rejects_non_envelope(normalizer, payload):
    with pytest.raises(PartnerTransportError, match="Unexpected partner response shape"):
        normalizer.classify(payload)


def test_both_shapes_yield_identical_products(normalizer, list_payload, object_payload):
    from_list = normalizer.normalize(list_payload, Operation.SEARCH)
    from_object = normalizer.normalize(object_payload, Operation.SEARCH)
    assert from_list.products == from_object.products
    assert from_object.landing_url is not None
    assert from_list.landing_url is None


def test_products_keep_order_and_fields(normalizer, list_payload):
    result = normalizer.normalize(list_payload, Operation.SEARCH)
    assert result.result_code == "0"
    assert [p.product_id for p in result.products] == [1001, 1002, 1003, 1004, 1005]
    first = result.products[0]
    assert first.product_name == "Phone 1"
    assert first.product_price == 10000
    assert first.is_rocket is False
    assert first.is_free_shipping is True
    assert first.category_name == "Mobile"
    assert first.keyword == "phone"
    assert first.rank == 1


def test_partial_records_default_to_zero(normalizer):
    payload = {"rCode": "0", "data": [{"productName": "No price"}, {"productPrice": "12,900", "productId": "77"}]}
    result = normalizer.normalize(payload, Operation.GOLDBOX)
    assert result.products[0].product_price == 0
    assert result.products[0].product_id == 0
    assert result.products[0].product_url == ""
    assert result.products[1].product_price == 12900
    assert result.products[1].product_id == 77


def test_large_integer_ids_stay_exact(normalizer):
    payload = {"rCode": "0", "data": [
        {"productId": "12345678901234567891", "productPrice": "1,234,567,890,123,456,789"},
        {"productId": "12.0", "productPrice": "9900.5"},
    ]}
    result = normalizer.normalize(payload, Operation.SEARCH)
    assert result.products[0].product_id == 12345678901234567891
    assert result.products[0].product_price == 1234567890123456789
    assert result.products[1].product_id == 12
    assert result.products[1].product_price == 9900


def test_missing_rank_falls_back_to_position(normalizer):
    payload = {"rCode": "0", "data": [{"productId": 1}, {"productId": 2, "rank": 0}]}
    result = normalizer.normalize(payload, Operation.CATALOG_PL)
    assert [p.rank for p in result.products] == [1, 2]


def test_negative_price_is_clamped(normalizer):
    result = normalizer.normalize({"rCode": "0", "data": [{"productPrice": -5}]}, Operation.SEARCH)
    assert result.products[0].product_price == 0


def test_success_message_is_never_empty(normalizer, list_payload):
    assert normalizer.normalize(list_payload, Operation.SEARCH).message == "OK"


def test_failure_code_yields_empty_result(normalizer, failure_payload):
    result = normalizer.normalize(failure_payload, Operation.SEARCH)
    assert result.result_code == "400"
    assert result.message == "Invalid imageSize"
    assert result.products == []
    assert result.landing_url is None
    assert result.is_success is False


def test_failure_drops_products_and_landing_url(normalizer, object_payload):
    payload = {**object_payload, "rCode": "1", "rMessage": ""}
    result = normalizer.normalize(payload, Operation.RECOMMENDATION)
    assert result.products == []
    assert result.landing_url is None
    assert "rCode=1" in result.message


def test_deeplink_extracts_first_shorten_url(normalizer):
    payload = {"rCode": "0", "data": [{"shortenUrl": "https://x"}, {"shortenUrl": "https://y"}]}
    result = normalizer.normalize(payload, Operation.DEEPLINK)
    assert result.shorten_url == "https://x"
    assert len(result.links) == 2
    assert result.products == []


def test_deeplink_failure_has_no_primary_result(normalizer):
    result = normalizer.normalize({"rCode": "1", "data": []}, Operation.DEEPLINK)
    assert result.shorten_url is None
    assert result.products == []
    assert result.links == []


def test_deeplink_link_fields(normalizer, deeplink_payload):
    link = normalizer.normalize(deeplink_payload, "deeplink").links[0]
    assert link.original_url == "https://www.coupang.com/vp/products/1234567890"
    assert link.landing_url.startswith("https://link.coupang.com/re/AFFSDP")


def test_result_serializes_camel_case(normalizer, object_payload):
    body = normalizer.normalize(object_payload, Operation.SEARCH).to_dict()
    assert body["resultCode"] == "0"
    assert body["landingUrl"].startswith("https://")
    assert body["products"][0]["productId"] == 1001
    assert body["products"][0]["isFreeShipping"] is True
    assert DiscoveryResult.model_validate(body).products[0].product_id == 1001
