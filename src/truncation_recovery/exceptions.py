"""Custom exceptions for truncation recovery.

The decision engine and the emergency extractor never raise; these are only
used at the boundaries where caller-supplied input is parsed.
"""


class TruncationRecoveryError(Exception):
    """Base exception for all truncation recovery errors."""

    pass


class PlanFormatError(TruncationRecoveryError):
    """Exception raised when a file plan cannot be parsed."""

    def __init__(self, message: str, payload: object = None):
        """
        Initialize plan format error.

        Args:
            message: Error message
            payload: Optional offending plan payload
        """
        super().__init__(message)
        self.payload = payload


class InputError(TruncationRecoveryError):
    """Exception raised when a buffer or file tree cannot be loaded."""

    pass
