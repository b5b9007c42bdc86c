"""Error taxonomy for the ingestion pipeline."""

from typing import Optional


class LiquidityError(Exception):
    """Base class for failures surfaced to the caller of a load."""

    def __init__(self, message: str = "Data load failed"):
        super().__init__(message)
        self.message = message


class RetrievalError(LiquidityError):
    """Raised when every configured source failed or returned an unusable payload."""

    def __init__(self, message: str = "All data sources failed", last_error: Optional[str] = None):
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.last_error = last_error


class FormatError(LiquidityError):
    """Raised when a payload was retrieved but is not the expected tabular shape."""

    def __init__(self, message: str = "Payload is not valid tabular data"):
        super().__init__(message)
