"""Domain-specific exceptions for lesson generation.

These exceptions let the orchestrators and the API layer distinguish
between failures that trigger a fallback, failures that degrade the
run, and failures that end it.
"""

from __future__ import annotations


class LessonGenerationError(Exception):
    """Base class for every error raised by the generation pipeline."""


class InputValidationError(LessonGenerationError):
    """The inbound request was rejected before any orchestration started."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class NoProviderConfigured(LessonGenerationError):
    """The provider list was empty — raised before any network call."""

    def __init__(self, kind: str = "text") -> None:
        self.kind = kind
        super().__init__(
            f"No {kind} generation providers configured. "
            "Set at least one provider API key in the environment."
        )


class ProviderCallError(LessonGenerationError):
    """One call to one provider failed.  Recoverable: triggers the next fallback."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        model: str = "",
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.detail = message
        super().__init__(f"{provider} failed: {message}")


class ProviderTimeoutError(ProviderCallError):
    """An asynchronous-job provider ran out of its polling budget."""

    def __init__(self, provider: str, message: str, *, model: str = "", job_id: str = "") -> None:
        self.job_id = job_id
        super().__init__(provider, message, model=model)


class AllProvidersExhausted(LessonGenerationError):
    """Every text provider in the list failed."""

    def __init__(self, last_error: Exception | None, tried: list[str] | None = None) -> None:
        self.last_error = last_error
        self.tried = tried or []
        last = str(last_error) if last_error else "Unknown error"
        super().__init__(f"All LLM providers failed. Last error: {last}")


class ImageProviderExhausted(LessonGenerationError):
    """Every model of an image provider failed for one hint."""

    def __init__(self, provider: str, hint: str, last_error: Exception | None = None) -> None:
        self.provider = provider
        self.hint = hint
        self.last_error = last_error
        last = str(last_error) if last_error else "Unknown error"
        super().__init__(f"All {provider} models failed for '{hint[:50]}': {last}")


class UploadFailure(LessonGenerationError):
    """A generated image could not be stored; the image is discarded."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Upload of '{path}' failed: {message}")


class SpliceMismatch(LessonGenerationError):
    """The hint line of an uploaded image was not found in the document.

    Non-fatal — collected as a warning, never raised out of the pipeline.
    """

    def __init__(self, matched_line: str) -> None:
        self.matched_line = matched_line
        super().__init__(f"Hint line not found in document: '{matched_line[:60]}'")


class LessonNotFoundError(LessonGenerationError):
    def __init__(self, lesson_id: str) -> None:
        self.lesson_id = lesson_id
        super().__init__(f"Lesson '{lesson_id}' not found")


class TraceNotFoundError(LessonGenerationError):
    def __init__(self, trace_id: str) -> None:
        self.trace_id = trace_id
        super().__init__(f"Trace '{trace_id}' not found")
