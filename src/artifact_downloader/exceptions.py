"""
Custom exceptions for artifact-downloader.

This module defines domain-specific exceptions so callers can tell apart
configuration problems, authentication failures, missing resources and
transport failures without inspecting message text.
"""


class ArtifactDownloaderError(Exception):
    """
    Base exception for all artifact-downloader errors.

    All custom exceptions should inherit from this class to allow for easy
    catching of every application-specific error.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ArtifactDownloaderError):
    """
    Exception raised when configuration is invalid or missing.

    Always raised before any network call is made.
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when a configuration or credential file cannot be read."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when required credentials are missing or incomplete."""

    pass


# =============================================================================
# API Errors
# =============================================================================


class APIError(ArtifactDownloaderError):
    """
    Exception raised for upstream API errors.

    Attributes:
        endpoint: The API endpoint that was accessed.
        status_code: The HTTP status code returned, if any.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        """
        Initialize the API exception.

        Args:
            message: The primary error message.
            endpoint: The API endpoint that was accessed.
            status_code: The HTTP status code returned.
            details: Optional additional context.
        """
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class AuthenticationError(APIError):
    """Exception raised on HTTP 401 or when a token cannot be obtained."""

    pass


class PermissionDeniedError(APIError):
    """Exception raised on HTTP 403."""

    pass


class ResourceNotFoundError(APIError):
    """
    Exception raised when an app, artifact or release is absent.

    Also raised when no download locator is available for an artifact
    (for example an expired or archived build).
    """

    pass


class TransportError(APIError):
    """Exception raised for network failures and unexpected HTTP statuses."""

    pass


# =============================================================================
# Resolution Errors
# =============================================================================


class SelectionError(ArtifactDownloaderError):
    """Exception raised when several candidates tie and no choice can be made."""

    pass
