"""Custom exceptions for the Stability API client"""
from typing import Any, Optional


class StabilityError(Exception):
    """Base exception for Stability API errors"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(StabilityError):
    """A request field violates an API constraint. Raised before any I/O."""
    def __init__(self, message: str, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class EmptyPromptError(ValidationError):
    """Exception for a missing prompt"""
    pass


class PromptTooLongError(ValidationError):
    """Exception for prompts over the maximum length"""
    pass


class UnknownModelError(ValidationError):
    """Exception for model names the API does not recognize"""
    pass


class InvalidAspectRatioError(ValidationError):
    """Exception for aspect ratios with a non-positive component"""
    pass


class UnsupportedAspectRatioError(ValidationError):
    """Exception for aspect ratios outside the API allow-list"""
    pass


class AspectRatioParseError(ValidationError):
    """Exception for strings that are not of the form "<width>:<height>" """
    pass


class StrengthOutOfRangeError(ValidationError):
    """Exception for strength values outside [0.0, 1.0]"""
    pass


class UnknownOutputFormatError(ValidationError):
    """Exception for output formats other than png and jpeg"""
    pass


class SerializationError(StabilityError):
    """Exception for failures while writing the multipart body"""
    pass


class TransportError(StabilityError):
    """Exception for requests that never got a response"""
    pass


class RequestTimeoutError(TransportError):
    """The request did not finish before the deadline"""
    pass


class RequestCancelledError(TransportError):
    """The caller cancelled the request while it was in flight"""
    pass


class RemoteError(StabilityError):
    """Exception for non-200 responses from the API"""
    def __init__(self, status_code: int, body: str):
        self.body = body
        super().__init__(
            f"got unexpected status code {status_code} while generating image. Response: {body}",
            status_code=status_code,
        )
