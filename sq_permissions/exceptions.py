"""
Custom exception classes for the updater.

These exceptions are caught by the CLI entry point in main.py, which prints
the message to stderr and exits with the exception's exit code.

Usage:
    from sq_permissions.exceptions import NotFoundError, ConfigurationError

    raise NotFoundError("Permission template with id abc")  # "... not found"
    raise ConfigurationError("SONARQUBE_TOKEN", "environment variable")
    raise ExternalServiceError("SonarQube API", "status 500")
"""


class AppException(Exception):
    """
    Base exception class for application-level errors.

    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        exit_code: Process exit code used when the error reaches the CLI
        error_code: Machine-readable error code for logging
    """

    def __init__(
        self,
        message: str,
        exit_code: int = 1,
        error_code: str | None = None,
    ):
        self.message = message
        self.exit_code = exit_code
        self.error_code = error_code or "APP_ERROR"
        super().__init__(message)


class NotFoundError(AppException):
    """
    Remote resource not found.

    Usage:
        raise NotFoundError("Permission template with id abc")
    """

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            message=f"{resource} not found",
            error_code="NOT_FOUND",
        )


class ValidationError(AppException):
    """
    Invalid option or argument.

    Usage:
        raise ValidationError("page_size must be between 1 and 500")
    """

    def __init__(self, message: str):
        super().__init__(
            message=message,
            exit_code=2,
            error_code="VALIDATION_ERROR",
        )


class ConfigurationError(AppException):
    """
    Configuration missing or invalid.

    Usage:
        raise ConfigurationError("SONARQUBE_TOKEN", "environment variable")
        # "Please configure SONARQUBE_TOKEN environment variable first"
    """

    def __init__(self, config_name: str, config_type: str = "configuration"):
        super().__init__(
            message=f"Please configure {config_name} {config_type} first",
            error_code="CONFIGURATION_MISSING",
        )


class AuthenticationError(AppException):
    """The remote service rejected the token (401/403)."""

    def __init__(self, service: str):
        super().__init__(
            message=f"{service} rejected the authentication token",
            error_code="AUTHENTICATION_FAILED",
        )


class ExternalServiceError(AppException):
    """
    External service error. Raised for hard failures: transport errors and
    unexpected responses on calls whose result the run depends on.

    Usage:
        raise ExternalServiceError("SonarQube API", "status 500")
        raise ExternalServiceError("SonarQube API", "read timeout")
    """

    def __init__(self, service: str, reason: str | None = None):
        message = f"{service} error"
        if reason:
            message = f"{service} error: {reason}"
        super().__init__(
            message=message,
            error_code="EXTERNAL_SERVICE_ERROR",
        )
