"""
Base Service Interface

All services inherit from this base class. The error taxonomy shared by
every service also lives here.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Validated input conforming to InputT schema

        Returns:
            Output conforming to OutputT schema

        Raises:
            ServiceError: If execution fails
        """
        pass

    async def health_check(self) -> bool:
        """Pure computation services are always healthy."""
        return True


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


# =============================================================================
# PROVIDER ERRORS (surfaced unchanged to the caller)
# =============================================================================


class MarketDataError(ServiceError):
    """Upstream data provider failed."""
    pass


class UnauthorizedError(MarketDataError):
    """Missing or rejected provider credentials."""
    pass


class RateLimitedError(MarketDataError):
    """Provider rate limit hit. The caller should back off, not retry now."""

    def __init__(
        self,
        service_name: str,
        message: str,
        retry_after_seconds: int = 60,
        details: dict = None,
    ):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            service_name,
            f"{message} (retry after {retry_after_seconds}s)",
            {**(details or {}), "retry_after_seconds": retry_after_seconds},
        )


class NotFoundError(MarketDataError):
    """Symbol unknown to the provider."""
    pass


class EmptyDataError(MarketDataError):
    """Well-formed response without any data points."""
    pass


class TransportError(MarketDataError):
    """Network failure, timeout or unexpected upstream status."""
    pass


# =============================================================================
# LOCAL ERRORS (detected before any computation)
# =============================================================================


class InvalidParameterError(ServiceError):
    """Unknown indicator/pattern name, malformed date, out-of-range value."""
    pass


class InsufficientDataError(ServiceError):
    """Series shorter than the minimum window a calculation needs."""

    def __init__(
        self,
        service_name: str,
        message: str,
        required: int,
        available: int,
        details: Optional[dict] = None,
    ):
        self.required = required
        self.available = available
        super().__init__(
            service_name,
            f"{message} (need {required} bars, have {available})",
            {**(details or {}), "required": required, "available": available},
        )
