"""Utility modules for QuoteDesk functions."""

from utils.conversation_logger import (
    configure_logging,
    log_estimate_handoff,
    log_field_retry,
)

__all__ = [
    "configure_logging",
    "log_estimate_handoff",
    "log_field_retry",
]
