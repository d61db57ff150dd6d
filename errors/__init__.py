"""Custom exception hierarchy for the lesson generation service."""

from errors.exceptions import (
    AllProvidersExhausted,
    ImageProviderExhausted,
    InputValidationError,
    LessonGenerationError,
    LessonNotFoundError,
    NoProviderConfigured,
    ProviderCallError,
    ProviderTimeoutError,
    SpliceMismatch,
    TraceNotFoundError,
    UploadFailure,
)

__all__ = [
    "AllProvidersExhausted",
    "ImageProviderExhausted",
    "InputValidationError",
    "LessonGenerationError",
    "LessonNotFoundError",
    "NoProviderConfigured",
    "ProviderCallError",
    "ProviderTimeoutError",
    "SpliceMismatch",
    "TraceNotFoundError",
    "UploadFailure",
]
