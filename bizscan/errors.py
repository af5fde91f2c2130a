"""Exceptions raised across the bizscan pipeline."""
from typing import Optional


class BizScanError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(BizScanError):
    """Raised when the pipeline can never succeed as configured (e.g. no API key)."""


class ExtractionError(BizScanError):
    """Raised when every API key x model combination failed for an image."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


class ReplyParseError(ValueError):
    """A model reply could not be read as the expected JSON shape."""


class ApprovalDenied(BizScanError):
    """Batch submission was denied or the approval request expired."""
