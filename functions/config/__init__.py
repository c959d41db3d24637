"""QuoteDesk configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import QuoteDeskError

__all__ = [
    "settings",
    "QuoteDeskError",
]
