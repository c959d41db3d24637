"""QuoteDesk error handling.

Custom exceptions and error codes for the intake and pricing core.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Intake Errors (2xxx)
    INTAKE_INCOMPLETE = "INTAKE_INCOMPLETE"

    # Pricing Errors (3xxx)
    PRICING_CONTRACT_VIOLATION = "PRICING_CONTRACT_VIOLATION"

    # LLM Errors (6xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"
    LLM_TIMEOUT = "LLM_TIMEOUT"


class QuoteDeskError(Exception):
    """Base exception for QuoteDesk errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(QuoteDeskError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class PricingContractError(QuoteDeskError):
    """Raised when malformed input reaches the pricing engine.

    This is a programming error on the caller's side: the engine only
    accepts a ValidatedProjectInput.
    """

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.PRICING_CONTRACT_VIOLATION,
            message=message,
            details=details
        )


class RemoteServiceError(QuoteDeskError):
    """Remote inference or delivery error."""

    def __init__(
        self,
        code: str,
        message: str,
        service: str,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "service": service}
        )
        self.service = service
