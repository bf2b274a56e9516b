"""Centralized error definitions for mimecraft."""

from enum import Enum
from typing import Any, Dict

from mimecraft.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    VALIDATION = "validation"
    ENCODING = "encoding"
    ENTROPY = "entropy"
    NETWORK = "network"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class MimecraftError(Exception):
    """Base exception for all mimecraft errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise MimecraftError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Validation Errors


class ValidationError(MimecraftError):
    """Base exception for caller-input validation failures."""

    category = ErrorCategory.VALIDATION
    user_message = "Invalid input"


class HeaderInjectionError(ValidationError):
    """A header name or value carries a bare CR or LF."""

    user_message = "Header field contains a line break"


class InvalidHeaderNameError(ValidationError):
    """A header field name is not printable US-ASCII without a colon."""

    user_message = "Invalid header field name"


class MissingRequiredFieldError(ValidationError):
    """Exception for missing required fields."""

    user_message = "A required field is missing"


## Encoding Errors


class EncodingError(MimecraftError):
    """Base exception for content that cannot be represented as requested."""

    category = ErrorCategory.ENCODING
    user_message = "Content could not be encoded"


class NonASCIIContentError(EncodingError):
    """Content is not valid for the 7bit transfer encoding."""

    user_message = "Content is not 7bit clean; choose quoted-printable or base64"


class LineTooLongError(EncodingError):
    """A 7bit line exceeds 998 octets."""

    user_message = "Line exceeds 998 octets; choose quoted-printable or base64"


class BoundaryCollisionError(EncodingError):
    """No multipart boundary could be found that avoids the content."""

    user_message = "Could not generate a unique multipart boundary"


## Entropy Errors


class EntropyError(MimecraftError):
    """Base exception for failures of the secure random source."""

    category = ErrorCategory.ENTROPY
    user_message = "Secure randomness error"


class RandomnessUnavailableError(EntropyError):
    """The secure random source failed; there is no weaker fallback."""

    user_message = "Secure random source is unavailable"


## Network Errors


class NetworkError(MimecraftError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class SMTPError(NetworkError):
    """Exception for SMTP protocol errors."""

    user_message = "Failed to send email"


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    user_message = "The connection timed out"


## File System Errors


class FileSystemError(MimecraftError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    user_message = "A file system error occurred"


class AttachmentNotFoundError(FileSystemError):
    """Exception when an attachment file cannot be read."""

    user_message = "Attachment not found"


## Configuration Errors


class ConfigurationError(MimecraftError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class MissingConfigError(ConfigurationError):
    """Exception for missing configuration settings."""

    user_message = "Missing configuration settings"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"


## Error Handler


class ErrorHandler:
    """Centralized error reporting for the command-line layer."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Record an error in the log and return its dictionary form.

        Expected mimecraft errors are logged at INFO, below the console
        handler's level; the caller shows the user-facing message.
        """
        if isinstance(error, MimecraftError):
            _get_logger().info(f"{context}: {error.message}", extra=error.details)
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "message": str(error),
                "details": {"context": context},
            }


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    if isinstance(error, MimecraftError):
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
