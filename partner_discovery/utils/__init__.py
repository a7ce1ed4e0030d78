"""Utils module for the Partner Product Discovery Gateway."""

from partner_discovery.utils.logger import LogContext, get_logger, setup_logging
from partner_discovery.utils.errors import (
    DiscoveryError,
    ErrorHandler,
    ErrorType,
    PartnerTransportError,
    ValidationError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "DiscoveryError",
    "ValidationError",
    "PartnerTransportError",
    "ErrorHandler",
    "ErrorType",
]
