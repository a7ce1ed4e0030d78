"""Discovery gateway package."""

from partner_discovery.gateway.discovery import DiscoveryGateway

__all__ = ["DiscoveryGateway"]
