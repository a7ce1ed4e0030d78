"""Configuration module."""

from partner_discovery.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
