"""Custom exceptions for the insights application."""


class InsightsException(Exception):
    """Base class for insights exceptions with HTTP status code.

    All custom exceptions inherit from this class and define their
    specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Insights error"):
        self.message = message
        super().__init__(message)


class EmptyEntriesError(InsightsException, ValueError):
    """Raised when a weekly summary is requested for an empty entry list.

    This is a caller contract violation, not a runtime condition, so it is
    the one error the pipeline lets escape to the caller.
    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, message: str = "No entries to analyze"):
        super().__init__(message)


class InvalidRequestError(InsightsException):
    """Raised when an analyze request has an unknown kind or missing payload.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, message: str = "Invalid request type"):
        super().__init__(message)


class ServiceNotConfiguredError(InsightsException):
    """Raised when the generation endpoint has no credentials configured.

    Maps to HTTP 500 Internal Server Error.
    """
    status_code = 500

    def __init__(self, message: str = "Service not configured"):
        super().__init__(message)
