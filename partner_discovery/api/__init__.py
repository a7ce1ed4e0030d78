"""HTTP API package."""

from partner_discovery.api.app import create_app

__all__ = ["create_app"]
