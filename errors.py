# errors.py
from typing import Optional


class ScreeningError(Exception):
    status_code = 500
    message = "Error analyzing image"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details


class InvalidImageError(ScreeningError):
    status_code = 400
    message = "Image data is required"


class AnalysisError(ScreeningError):
    """The vision model call failed; `details` carries the upstream message."""

    status_code = 500
    message = "Error analyzing image"
