from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INPUT_INVALID = "INPUT_INVALID"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    INFERENCE_FAILED = "INFERENCE_FAILED"
    DATE_UNPARSEABLE = "DATE_UNPARSEABLE"
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"


class ResumeIntakeError(Exception):
    kind: ErrorKind = ErrorKind.INPUT_INVALID

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InputInvalidError(ResumeIntakeError):
    kind = ErrorKind.INPUT_INVALID


class UploadFailedError(ResumeIntakeError):
    kind = ErrorKind.UPLOAD_FAILED


class ExtractionFailedError(ResumeIntakeError):
    kind = ErrorKind.EXTRACTION_FAILED


class InferenceFailedError(ResumeIntakeError):
    kind = ErrorKind.INFERENCE_FAILED


class DateUnparseableError(ResumeIntakeError):
    kind = ErrorKind.DATE_UNPARSEABLE

    def __init__(self, phrase: str) -> None:
        super().__init__(f"Unrecognized date expression: {phrase!r}")
        self.phrase = phrase


class SchemaValidationError(ResumeIntakeError):
    kind = ErrorKind.SCHEMA_VALIDATION_ERROR


class PipelineCancelledError(ResumeIntakeError):
    kind = ErrorKind.REQUEST_CANCELLED


class TransientInferenceError(Exception):
    """Retryable failure reported by an inference capability (5xx, timeout, throttling)."""
