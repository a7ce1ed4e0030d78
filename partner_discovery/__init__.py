"""
Partner Product Discovery Gateway.

Normalizes requests to and responses from the Coupang Partners affiliate API
for five operations: search, goldbox, catalogPL, recommendation and deeplink.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
