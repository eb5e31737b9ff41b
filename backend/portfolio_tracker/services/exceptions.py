# backend/portfolio_tracker/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The FastAPI layer (main.py) maps them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── InvalidRangeError
    ├── NotFoundError
    │   ├── PortfolioNotFoundError
    │   └── PresetNotFoundError
    └── MarketDataError
        └── NoPriceDataError

Per-day gaps in price data are NOT exceptions. They degrade a single day's
value to 0 for the affected symbol and are reported as warnings.
"""

from datetime import date


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input parameters are malformed.

    Examples: non-positive amount or interval, pair ratios that do not sum
    to 100, an unsupported asset.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidRangeError(ServiceError):
    """
    Raised when a requested date range cannot be processed.

    Either the start date is after the end date, or the start date is in
    the future.

    Attributes:
        start_date: Requested first day
        end_date: Requested last day
    """

    def __init__(self, message: str, start_date: date, end_date: date) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Preset")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """Raised when a portfolio cannot be found."""

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class PresetNotFoundError(NotFoundError):
    """Raised when an unknown preset portfolio is requested."""

    def __init__(self, preset_name: str) -> None:
        self.preset_name = preset_name
        super().__init__(
            f"Unknown preset: {preset_name}",
            resource_type="Preset",
            resource_id=preset_name,
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """Base exception for price data failures."""
    pass


class NoPriceDataError(MarketDataError):
    """
    Raised when a required symbol has no price observations in range.

    This is a hard failure: nothing can be valued. Isolated missing days
    are handled as warnings instead.

    Attributes:
        symbol: The symbol without history
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"No historical price data for {symbol}")


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidRangeError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "PresetNotFoundError",
    "MarketDataError",
    "NoPriceDataError",
]
