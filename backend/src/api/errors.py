"""
Translation of order engine errors into HTTP responses.

Routes catch ``OrderEngineError`` and raise the HTTPException built here; the
application-level HTTPException handler renders its detail as the response
body ``{"error": code, "message": ..., "context": {...}}``.
"""

from fastapi import HTTPException, status

from src.services.orders.exceptions import (
    IllegalTransitionError,
    InvalidReasonError,
    InvalidStateError,
    ItemNotFoundError,
    NotFoundError,
    OrderEngineError,
    OrderTerminalError,
    OrderUpdateError,
    PartnerUnavailableError,
)

# First match wins, so subclasses go before their bases.
_STATUS_CODES: list[tuple[type[OrderEngineError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ItemNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidReasonError, 422),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (OrderTerminalError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (PartnerUnavailableError, status.HTTP_409_CONFLICT),
    (OrderUpdateError, status.HTTP_409_CONFLICT),
]


def status_code_for(error: OrderEngineError) -> int:
    """
    HTTP status code for an engine error.

    Args:
        error: Engine error raised by the service

    Returns:
        Matching status code, 400 for unmapped engine errors
    """
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def to_http_exception(error: OrderEngineError) -> HTTPException:
    """Build the HTTPException for an engine error."""
    return HTTPException(
        status_code=status_code_for(error),
        detail={
            "error": error.code,
            "message": str(error),
            "context": error.context,
        },
    )
