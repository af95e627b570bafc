from .stability_exceptions import (
    AspectRatioParseError,
    EmptyPromptError,
    InvalidAspectRatioError,
    PromptTooLongError,
    RemoteError,
    RequestCancelledError,
    RequestTimeoutError,
    SerializationError,
    StabilityError,
    StrengthOutOfRangeError,
    TransportError,
    UnknownModelError,
    UnknownOutputFormatError,
    UnsupportedAspectRatioError,
    ValidationError,
)

__all__ = [
    'StabilityError', 'ValidationError', 'EmptyPromptError', 'PromptTooLongError',
    'UnknownModelError', 'InvalidAspectRatioError', 'UnsupportedAspectRatioError',
    'AspectRatioParseError', 'StrengthOutOfRangeError', 'UnknownOutputFormatError',
    'SerializationError', 'TransportError', 'RequestTimeoutError',
    'RequestCancelledError', 'RemoteError',
]
