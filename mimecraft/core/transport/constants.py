"""SMTP constants used by the delivery adapter."""


class SMTPResponse:
    """Standard SMTP response codes."""

    OK = 250  # Requested mail action okay, completed

    # 4xx Transient Failure
    SERVICE_NOT_AVAILABLE = 421  # Service not available, closing channel
    MAILBOX_BUSY = 450  # Mailbox unavailable (e.g., busy)
    LOCAL_ERROR = 451  # Local error in processing
    INSUFFICIENT_STORAGE = 452  # Insufficient system storage


class TransientErrors:
    """SMTP error codes that warrant retry attempts."""

    CODES = [
        SMTPResponse.SERVICE_NOT_AVAILABLE,  # 421
        SMTPResponse.MAILBOX_BUSY,  # 450
        SMTPResponse.LOCAL_ERROR,  # 451
        SMTPResponse.INSUFFICIENT_STORAGE,  # 452
    ]

    @classmethod
    def is_transient(cls, code: int) -> bool:
        """Check if an error code is transient.

        Args:
            code: SMTP response code

        Returns:
            True if transient, False otherwise
        """
        return code in cls.CODES


class RetryPolicy:
    """Backoff settings for transient failures (in seconds)."""

    BASE_DELAY = 1.0
    MAX_DELAY = 60.0
