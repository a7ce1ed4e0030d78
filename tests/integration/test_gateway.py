"""
Integration tests for the discovery gateway with a recorded partner client.
"""

import pytest

from partner_discovery.gateway.discovery import DiscoveryGateway
from partner_discovery.models.schemas import DeviceIdentity, DeviceIdMethod, Operation, SearchRequest
from partner_discovery.utils.errors import PartnerTransportError, ValidationError

# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gateway(mock_partner_client, settings):
    return DiscoveryGateway(mock_partner_client, settings=settings)


def total_calls(client) -> int:
    return sum(
        getattr(client, name).await_count
        for name in ("search", "goldbox", "catalog_pl", "recommendation", "deeplink")
    )

# =============================================================================
# Operations
# =============================================================================

@pytest.mark.asyncio
async def test_search_returns_five_products(gateway, mock_partner_client):
    result = await gateway.discover("search", {"keyword": "phone", "limit": "5"})

    mock_partner_client.search.assert_awaited_once_with("phone", limit=5, image_size="230x230")
    assert result.result_code == "0"
    assert len(result.products) == 5
    assert [p.rank for p in result.products] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_goldbox_defaults(gateway, mock_partner_client):
    await gateway.discover(Operation.GOLDBOX, {})
    mock_partner_client.goldbox.assert_awaited_once_with(sub_id=None, image_size="230x230")


@pytest.mark.asyncio
async def test_catalog_pl_uses_default_sub_id(gateway, mock_partner_client):
    result = await gateway.discover("catalogPL", {})
    mock_partner_client.catalog_pl.assert_awaited_once_with(
        limit=20, sub_id="defaultsub", image_size="512x512"
    )
    assert len(result.products) == 5


@pytest.mark.asyncio
async def test_recommendation_object_shape(gateway, mock_partner_client):
    result = await gateway.discover("recommendation", {"deviceId": "device-1"})
    mock_partner_client.recommendation.assert_awaited_once_with(
        "device-1", sub_id=None, image_size="512x512"
    )
    assert result.landing_url == "https://link.coupang.com/re/AFFSRP?keyword=phone"
    assert len(result.products) == 5


@pytest.mark.asyncio
async def test_deeplink_wraps_single_url(gateway, mock_partner_client):
    result = await gateway.discover("deeplink", {"url": "https://www.coupang.com/vp/products/1234567890"})
    mock_partner_client.deeplink.assert_awaited_once_with(
        ["https://www.coupang.com/vp/products/1234567890"], sub_id=None
    )
    assert result.shorten_url == "https://link.coupang.com/a/abc123"
    assert result.products == []


@pytest.mark.asyncio
async def test_execute_normalized_request(gateway, mock_partner_client):
    result = await gateway.execute(SearchRequest(keyword="tv", limit=3))
    mock_partner_client.search.assert_awaited_once_with("tv", limit=3, image_size="230x230")
    assert result.is_success

# =============================================================================
# Validation
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("operation, params, message", [
    ("search", {}, "Keyword is required"),
    ("search", {"keyword": "  "}, "Keyword is required"),
    ("recommendation", {"deviceId": ""}, "Device ID is required"),
    ("deeplink", {}, "URL parameter is required"),
])
async def test_validation_makes_no_partner_call(gateway, mock_partner_client, operation, params, message):
    with pytest.raises(ValidationError, match=message):
        await gateway.discover(operation, params)
    assert total_calls(mock_partner_client) == 0


@pytest.mark.asyncio
async def test_unknown_operation(gateway, mock_partner_client):
    with pytest.raises(ValidationError, match="Unknown operation"):
        await gateway.discover("bestsellers", {})
    assert total_calls(mock_partner_client) == 0

# =============================================================================
# Device identity
# =============================================================================

@pytest.mark.asyncio
async def test_blank_device_id_filled_from_identity(gateway, mock_partner_client):
    identity = DeviceIdentity(token="5e918d20", method=DeviceIdMethod.FINGERPRINT)
    await gateway.discover("recommendation", {"deviceId": ""}, device_identity=identity)
    mock_partner_client.recommendation.assert_awaited_once_with(
        "5e918d20", sub_id=None, image_size="512x512"
    )


@pytest.mark.asyncio
async def test_explicit_device_id_wins(gateway, mock_partner_client):
    identity = DeviceIdentity(token="5e918d20", method=DeviceIdMethod.FINGERPRINT)
    await gateway.discover("recommendation", {"deviceId": "adid-1"}, device_identity=identity)
    assert mock_partner_client.recommendation.await_args.args == ("adid-1",)

# =============================================================================
# Failures
# =============================================================================

@pytest.mark.asyncio
async def test_business_failure_is_a_result(gateway, mock_partner_client, failure_payload):
    mock_partner_client.search.return_value = failure_payload
    result = await gateway.discover("search", {"keyword": "phone", "imageSize": "1x1"})
    assert result.result_code == "400"
    assert result.message == "Invalid imageSize"
    assert result.products == []


@pytest.mark.asyncio
async def test_transport_error_propagates(gateway, mock_partner_client):
    mock_partner_client.goldbox.side_effect = PartnerTransportError("Partner API HTTP 401: denied", status=401)
    with pytest.raises(PartnerTransportError) as exc:
        await gateway.discover("goldbox", {})
    assert exc.value.status == 401


@pytest.mark.asyncio
async def test_unexpected_client_error_is_wrapped(gateway, mock_partner_client):
    mock_partner_client.catalog_pl.side_effect = RuntimeError("socket closed")
    with pytest.raises(PartnerTransportError, match="socket closed"):
        await gateway.discover("catalogPL", {})


@pytest.mark.asyncio
async def test_non_envelope_payload_is_transport_error(gateway, mock_partner_client):
    mock_partner_client.search.return_value = "<html>"
    with pytest.raises(PartnerTransportError, match="Unexpected partner response shape"):
        await gateway.discover("search", {"keyword": "phone"})


@pytest.mark.asyncio
async def test_one_call_per_operation(gateway, mock_partner_client):
    await gateway.discover("search", {"keyword": "phone"})
    await gateway.discover("goldbox", {})
    assert total_calls(mock_partner_client) == 2
