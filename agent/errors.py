"""
Error taxonomy.

- AppError and subclasses: operational errors carrying an HTTP status.
- StoreError: persistence failed (database locked, missing, corrupted).

Transient integration failures are caught at the boundary of each handling
path and turned into an apology; they never reach the end user verbatim.
"""

import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, status_code: int = 500, is_operational: bool = True):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational


class ValidationError(AppError):
    """Malformed input rejected at ingress."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class StoreError(AppError):
    """Persistent store unavailable or failed."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


def handle_error(error: Exception) -> None:
    """Log an error, distinguishing operational from unexpected failures."""
    if isinstance(error, AppError) and error.is_operational:
        logger.error(
            f"Operational error: {error.message}",
            extra={"status_code": error.status_code},
        )
    else:
        logger.error(f"Unexpected error: {error}", exc_info=error)
