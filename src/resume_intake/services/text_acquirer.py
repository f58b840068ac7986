from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

from resume_intake.errors import ExtractionFailedError, PipelineCancelledError, UploadFailedError
from resume_intake.utils.logger import get_logger

logger = get_logger(__name__)

AcquisitionPath = Literal["inline", "external"]


class InlineExtractor(Protocol):
    def extract(self, pdf_bytes: bytes) -> str: ...


class ExternalUploader(Protocol):
    def upload(self, pdf_bytes: bytes, filename: str = ..., *, timeout: float) -> str: ...


class ExternalExtractor(Protocol):
    def extract(self, handle: str, *, timeout: float) -> str: ...


@dataclass(frozen=True)
class AcquiredText:
    text: str
    path: AcquisitionPath
    size_bytes: int


class PdfTextAcquirer:
    """Pick the inline or the external extraction path by document size.

    Documents smaller than the threshold are read in-process; inline failures are final
    because they mean the file itself is malformed. Larger documents go through upload then
    extract, which share one timeout budget. Neither path retries or falls back to the other.
    """

    def __init__(
        self,
        inline_extractor: InlineExtractor,
        uploader: Optional[ExternalUploader],
        external_extractor: Optional[ExternalExtractor],
        size_threshold: int,
        external_timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inline = inline_extractor
        self._uploader = uploader
        self._external = external_extractor
        self._size_threshold = size_threshold
        self._external_timeout = external_timeout_seconds
        self._clock = clock

    def choose_path(self, size_bytes: int, size_threshold: Optional[int] = None) -> AcquisitionPath:
        threshold = self._size_threshold if size_threshold is None else size_threshold
        return "inline" if size_bytes < threshold else "external"

    def acquire_text(
        self,
        pdf_bytes: bytes,
        size_threshold: Optional[int] = None,
        filename: str = "resume.pdf",
        cancel_event: Optional[threading.Event] = None,
    ) -> AcquiredText:
        size_bytes = len(pdf_bytes)
        path = self.choose_path(size_bytes, size_threshold)
        logger.info("Acquiring PDF text via %s path (%s bytes)", path, size_bytes)

        if path == "inline":
            text = self._inline.extract(pdf_bytes)
        else:
            text = self._acquire_external(pdf_bytes, filename, cancel_event)

        if not isinstance(text, str) or not text.strip():
            raise ExtractionFailedError(f"The {path} extraction path produced no text.")
        return AcquiredText(text=text, path=path, size_bytes=size_bytes)

    def _acquire_external(
        self,
        pdf_bytes: bytes,
        filename: str,
        cancel_event: Optional[threading.Event],
    ) -> str:
        if self._uploader is None or self._external is None:
            raise UploadFailedError("External PDF extraction service is not configured.")

        deadline = self._clock() + self._external_timeout
        handle = self._uploader.upload(pdf_bytes, filename, timeout=self._external_timeout)

        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError("Request cancelled after PDF upload.")
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise ExtractionFailedError("Timeout budget exhausted after PDF upload.")
        text = self._external.extract(handle, timeout=remaining)

        overrun = self._clock() - deadline
        if overrun > 0:
            raise ExtractionFailedError(
                f"External extraction exceeded its {self._external_timeout:g}s budget by {overrun:.1f}s."
            )
        return text
