"""Shared router helpers."""

from fastapi import Request

from errors import FormatError, LiquidityError, RetrievalError
from session import SessionContext


def get_session(request: Request) -> SessionContext:
    """The session owned by the application root."""
    return request.app.state.session


def error_status(exc: LiquidityError) -> int:
    """HTTP status for a load failure; the front-end shows any of them as an error state."""
    if isinstance(exc, RetrievalError):
        return 502
    if isinstance(exc, FormatError):
        return 422
    return 500
