"""
HTTP surface of the discovery gateway.

Every route takes its parameters as plain query text and hands them to the
gateway unparsed, so validation (HTTP 400) and defaulting stay in one place.
Partner-reported failures come back as HTTP 200 with a non-"0" resultCode.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from partner_discovery import __version__
from partner_discovery.config.settings import Settings, get_settings
from partner_discovery.gateway.discovery import DiscoveryGateway
from partner_discovery.models.schemas import Operation
from partner_discovery.services.device_identity import (
    DeviceIdentityProvider,
    HeaderSignalSource,
    MemoryDeviceStore,
    store_key,
)
from partner_discovery.services.partner_client import CoupangPartnersClient
from partner_discovery.utils.errors import DiscoveryError, ErrorHandler
from partner_discovery.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/discover", tags=["discover"])


def get_gateway(request: Request) -> DiscoveryGateway:
    return request.app.state.gateway


async def _run(gateway: DiscoveryGateway, operation: Operation, params: dict[str, Any]) -> JSONResponse:
    result = await gateway.discover(operation, params)
    return JSONResponse(status_code=200, content=result.to_dict())


@router.get("/search")
async def search(
    keyword: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    image_size: Optional[str] = Query(None, alias="imageSize"),
    gateway: DiscoveryGateway = Depends(get_gateway),
):
    """Keyword product search."""
    return await _run(gateway, Operation.SEARCH, {
        "keyword": keyword, "limit": limit, "imageSize": image_size,
    })


@router.get("/goldbox")
async def goldbox(
    sub_id: Optional[str] = Query(None, alias="subId"),
    image_size: Optional[str] = Query(None, alias="imageSize"),
    gateway: DiscoveryGateway = Depends(get_gateway),
):
    """Today's daily deals."""
    return await _run(gateway, Operation.GOLDBOX, {"subId": sub_id, "imageSize": image_size})


@router.get("/catalogPL")
async def catalog_pl(
    limit: Optional[str] = Query(None),
    sub_id: Optional[str] = Query(None, alias="subId"),
    image_size: Optional[str] = Query(None, alias="imageSize"),
    gateway: DiscoveryGateway = Depends(get_gateway),
):
    """Curated private-label catalog."""
    return await _run(gateway, Operation.CATALOG_PL, {
        "limit": limit, "subId": sub_id, "imageSize": image_size,
    })


@router.get("/recommendation")
async def recommendation(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    sub_id: Optional[str] = Query(None, alias="subId"),
    image_size: Optional[str] = Query(None, alias="imageSize"),
    gateway: DiscoveryGateway = Depends(get_gateway),
):
    """Personalized recommendation for a device."""
    return await _run(gateway, Operation.RECOMMENDATION, {
        "deviceId": device_id, "subId": sub_id, "imageSize": image_size,
    })


@router.get("/deeplink")
async def deeplink(
    url: Optional[str] = Query(None),
    sub_id: Optional[str] = Query(None, alias="subId"),
    gateway: DiscoveryGateway = Depends(get_gateway),
):
    """Convert a partner product URL into an affiliate short link."""
    return await _run(gateway, Operation.DEEPLINK, {"url": url, "subId": sub_id})


async def device_identity(
    request: Request,
    device_id: Optional[str] = Query(None, alias="deviceId"),
):
    """
    Derive a device identity from the calling browser's headers.

    Nothing is stored server-side; the browser keeps the token in its own
    local storage and sends it back as ``deviceId``. A token sent back is
    echoed unchanged, so repeated calls from a mobile-like browser keep its
    random token instead of minting a new one each time.
    """
    signals = HeaderSignalSource(request.headers)
    mobile_like = signals.is_mobile_like()
    store = MemoryDeviceStore()
    existing = (device_id or "").strip()
    if existing:
        store.set(store_key(DeviceIdentityProvider.method_for(mobile_like)), existing)
    provider = DeviceIdentityProvider(store, signals)
    identity = provider.get_or_create(environment_is_mobile_like=mobile_like)
    return identity.to_dict()


async def health():
    return {"status": "ok", "version": __version__}


async def handle_discovery_error(request: Request, exc: DiscoveryError) -> JSONResponse:
    status = ErrorHandler.status_for(exc)
    log = logger.warning if status < 500 else logger.error
    log("Discovery request failed", path=request.url.path, status=status, error=exc.message)
    return JSONResponse(status_code=status, content=ErrorHandler.to_body(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content=ErrorHandler.to_body(exc))


def create_app(
    gateway: Optional[DiscoveryGateway] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Without an injected gateway, one is built around a CoupangPartnersClient
    that lives as long as the application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if gateway is not None:
            app.state.gateway = gateway
            yield
            return
        async with CoupangPartnersClient(settings) as client:
            app.state.gateway = DiscoveryGateway(client, settings=settings)
            logger.info("Discovery API started", partner=settings.coupang_api_base_url)
            yield
        logger.info("Discovery API stopped")

    app = FastAPI(
        title="Partner Product Discovery Gateway",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    if gateway is not None:
        app.state.gateway = gateway

    app.include_router(router)
    app.add_api_route("/device-id", device_identity, methods=["GET"], tags=["device"])
    app.add_api_route("/health", health, methods=["GET"], tags=["health"])
    app.add_exception_handler(DiscoveryError, handle_discovery_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    return app
