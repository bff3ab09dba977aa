"""
Error types shared by the report and chat layers.
"""
from typing import Optional


class ReportServiceError(Exception):
    """Base class for errors raised by this package."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReportServiceError):
    """Required report fields are missing or empty. Maps to HTTP 400."""


class UpstreamError(ReportServiceError):
    """The report API or chat API failed or answered with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedPayloadError(ReportServiceError):
    """A bot reply could not be decoded as the expected JSON envelope."""
