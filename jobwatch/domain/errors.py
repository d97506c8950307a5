"""
Error Handling Module

Defines domain exceptions and error categories for the status subscription layer.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry categories and user-facing messaging.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    JOB_NOT_FOUND = "job_not_found"
    NETWORK_ERROR = "network_error"
    PROTOCOL_ERROR = "protocol_error"
    MALFORMED_MESSAGE = "malformed_message"
    TRACKING_ABANDONED = "tracking_abandoned"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.JOB_NOT_FOUND: {
        "title": "Job Not Found",
        "message": "The requested job could not be found on the server.",
        "action": "Check the job identifier or start the integration again.",
    },
    ErrorCategory.NETWORK_ERROR: {
        "title": "Network Error",
        "message": "Unable to reach the job status service.",
        "action": "Check your connection. Status updates resume automatically.",
    },
    ErrorCategory.PROTOCOL_ERROR: {
        "title": "Unexpected Server Response",
        "message": "The job status service returned a response that could not be understood.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
    ErrorCategory.MALFORMED_MESSAGE: {
        "title": "Malformed Status Message",
        "message": "A real-time status message could not be read and was ignored.",
        "action": "No action needed.",
    },
    ErrorCategory.TRACKING_ABANDONED: {
        "title": "Status Tracking Stopped",
        "message": "Live status updates for this job could not be kept up and were stopped.",
        "action": "Reload the job to try again.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while tracking the job.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions are pure and have no external dependencies.
    They can optionally wrap an underlying exception for context.
    """

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class JobNotFoundError(DomainError):
    """Raised when the backend has no record of a job."""

    pass


class TransportError(DomainError):
    """
    Raised for any network or protocol failure while talking to the backend.

    Covers refused connections, timeouts, unexpected HTTP statuses,
    abrupt WebSocket closes and payloads that cannot be translated.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class MalformedMessageError(DomainError):
    """Raised when a push frame cannot be parsed into a snapshot."""

    pass


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with the messages handed to callers.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for callers that render it.

        Returns:
            Dictionary with error information
        """
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


class TrackingError(ApplicationError):
    """
    Terminal error state handed to a tracker's error callback.

    Raised (never thrown at the caller) when tracking cannot be
    established or has to be abandoned for a job.
    """

    def __init__(
        self,
        job_id: str,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(category, technical_message, context)
        self.job_id = job_id

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict["job_id"] = self.job_id
        return base_dict


def categorize_error(error: Exception) -> ErrorCategory:
    """
    Map a domain exception onto an error category.

    Args:
        error: Exception raised by a fetcher or channel

    Returns:
        Matching ErrorCategory
    """
    if isinstance(error, JobNotFoundError):
        return ErrorCategory.JOB_NOT_FOUND
    if isinstance(error, MalformedMessageError):
        return ErrorCategory.MALFORMED_MESSAGE
    if isinstance(error, TransportError):
        if error.status_code is not None:
            return ErrorCategory.PROTOCOL_ERROR
        return ErrorCategory.NETWORK_ERROR
    return ErrorCategory.SYSTEM_ERROR
