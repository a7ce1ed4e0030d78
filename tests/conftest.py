import pytest
from pathlib import Path
from unittest.mock import AsyncMock

from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.services.device_identity import EnvironmentSignals, default_canvas_snapshot


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Real Settings built from explicit values, ignoring .env files."""
    values = {
        "COUPANG_ACCESS_KEY": "test-access-key",
        "COUPANG_SECRET_KEY": "test-secret-key",
        "COUPANG_DEFAULT_SUB_ID": "defaultsub",
        "COUPANG_API_BASE_URL": "https://partner.test",
        "MAX_RETRIES": 1,
        "DEVICE_STORE_PATH": str(tmp_path / "device_identity.json"),
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


def product_record(idx: int, **overrides) -> dict:
    record = {
        "productId": 1000 + idx,
        "productName": f"Phone {idx}",
        "productPrice": 10000 * idx,
        "productImage": f"https://thumbnail.coupangcdn.com/{idx}.jpg",
        "productUrl": f"https://link.coupang.com/re/{idx}",
        "isRocket": idx % 2 == 0,
        "isFreeShipping": True,
        "categoryName": "Mobile",
        "keyword": "phone",
        "rank": idx,
    }
    record.update(overrides)
    return record


@pytest.fixture
def product_records():
    return [product_record(i) for i in range(1, 6)]


@pytest.fixture
def list_payload(product_records):
    return {"rCode": "0", "rMessage": "", "data": product_records}


@pytest.fixture
def object_payload(product_records):
    return {
        "rCode": "0",
        "rMessage": "",
        "data": {
            "landingUrl": "https://link.coupang.com/re/AFFSRP?keyword=phone",
            "productData": product_records,
        },
    }


@pytest.fixture
def deeplink_payload():
    return {
        "rCode": "0",
        "rMessage": "",
        "data": [
            {
                "originalUrl": "https://www.coupang.com/vp/products/1234567890",
                "shortenUrl": "https://link.coupang.com/a/abc123",
                "landingUrl": "https://link.coupang.com/re/AFFSDP?pageKey=1234567890",
            }
        ],
    }


@pytest.fixture
def failure_payload():
    return {"rCode": "400", "rMessage": "Invalid imageSize", "data": None}


@pytest.fixture
def mock_partner_client(list_payload, object_payload, deeplink_payload):
    """Test double for the partner client; every call is recorded."""
    client = AsyncMock()
    client.search.return_value = list_payload
    client.goldbox.return_value = list_payload
    client.catalog_pl.return_value = list_payload
    client.recommendation.return_value = object_payload
    client.deeplink.return_value = deeplink_payload
    return client


@pytest.fixture
def signals():
    return EnvironmentSignals(
        user_agent="Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)",
        language="ko-KR",
        screen_width=2560,
        screen_height=1440,
        timezone_offset=-540,
        canvas_snapshot=default_canvas_snapshot(),
    )


@pytest.fixture
def settings_factory(tmp_path):
    """Build Settings with overrides on top of the test defaults."""
    def factory(**overrides) -> Settings:
        return make_settings(tmp_path, **overrides)
    return factory
