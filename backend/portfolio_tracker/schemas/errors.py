# backend/portfolio_tracker/schemas/errors.py
"""
Error envelopes returned by the global exception handlers in main.py.

Every non-2xx response has the shape {"error", "message", "details"}.
`details` depends on the error:

    400 ValidationError        {"field": "amount"}
    400 InvalidRangeError      {"start_date": "2024-06-10", "end_date": "2024-06-01"}
    404 PortfolioNotFoundError {"resource_type": "Portfolio", "resource_id": 7}
    404 PresetNotFoundError    {"resource_type": "Preset", "resource_id": "MOON"}
    404 NoPriceDataError       {"symbol": "ETH"}
    422 request validation     [{"field": "query.start_date", "message": ..., "type": ...}]
    500 ServiceError           null
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Envelope for domain errors (400, 404, 500) and HTTPExceptions."""

    error: str = Field(
        ...,
        description="Exception class name, e.g. 'NoPriceDataError'"
    )
    message: str = Field(
        ...,
        description="Human-readable explanation"
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Machine-readable context; shape depends on `error`"
    )


class FieldError(BaseModel):
    """One rejected request field."""

    field: str = Field(..., description="Dotted location, e.g. 'body.amount'")
    message: str
    type: str = Field(..., description="pydantic error type, e.g. 'missing'")


class ValidationErrorDetail(BaseModel):
    """Envelope for malformed requests (422): one entry per rejected field."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[FieldError]
