"""
Error handling utilities
"""

from typing import Optional
from worknotes.models.response import ErrorResponse
from worknotes.utils.logger import logger


class WorknotesError(Exception):
    """Base exception for application errors"""
    pass


class RemoteStoreError(WorknotesError):
    """Remote store read/write failure"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class AccountDeletionError(WorknotesError):
    """Account deletion did not complete"""
    def __init__(self, message: str, step: Optional[str] = None, status_code: int = 500):
        self.message = message
        self.step = step
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(WorknotesError):
    """Validation error exception"""
    pass


def handle_error(error: Exception) -> ErrorResponse:
    """
    Handle error and return user-friendly message

    Args:
        error: Exception to handle

    Returns:
        ErrorResponse with user-friendly message
    """
    logger.error(f"Error occurred: {error}", exc_info=True)

    if isinstance(error, AccountDeletionError):
        return ErrorResponse(
            message=f"Account deletion failed: {error.message}. Please try again.",
            error_code=error.step,
        )

    if isinstance(error, RemoteStoreError):
        return ErrorResponse(
            message=f"Sync error: {error.message}",
            error_code=str(error.status_code) if error.status_code else None,
        )

    if isinstance(error, ValidationError):
        return ErrorResponse(
            message=f"Validation error: {str(error)}",
        )

    # Generic error message
    return ErrorResponse(
        message="Something went wrong. Please try again later.",
    )


def format_error_message(error: Exception) -> str:
    """
    Format error message for user

    Args:
        error: Exception to format

    Returns:
        User-friendly error message
    """
    error_response = handle_error(error)
    return error_response.message
