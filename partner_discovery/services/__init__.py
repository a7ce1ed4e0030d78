"""
Services package for the Partner Product Discovery Gateway.

Services:
    - ParameterNormalizer: Per-operation validation and defaults
    - ResponseNormalizer: Partner payloads to DiscoveryResult
    - CoupangPartnersClient: Signed httpx client for the partner API
    - DeviceIdentityProvider: Per-browser device identity
"""

from partner_discovery.services.device_identity import (
    DeviceIdentityProvider,
    DeviceStore,
    EnvironmentSignals,
    EnvironmentSignalSource,
    HeaderSignalSource,
    JsonFileDeviceStore,
    LocalSignalSource,
    MemoryDeviceStore,
    StaticSignalSource,
    fingerprint_hash,
)
from partner_discovery.services.parameter_normalizer import ParameterNormalizer, parse_limit
from partner_discovery.services.partner_client import (
    CoupangPartnersClient,
    PartnerClient,
    sign_request,
)
from partner_discovery.services.response_normalizer import (
    PartnerPayload,
    PayloadShape,
    ResponseNormalizer,
)

__all__ = [
    # Device identity
    "DeviceIdentityProvider",
    "DeviceStore",
    "EnvironmentSignals",
    "EnvironmentSignalSource",
    "HeaderSignalSource",
    "JsonFileDeviceStore",
    "LocalSignalSource",
    "MemoryDeviceStore",
    "StaticSignalSource",
    "fingerprint_hash",
    # Parameters
    "ParameterNormalizer",
    "parse_limit",
    # Partner client
    "CoupangPartnersClient",
    "PartnerClient",
    "sign_request",
    # Responses
    "PartnerPayload",
    "PayloadShape",
    "ResponseNormalizer",
]
