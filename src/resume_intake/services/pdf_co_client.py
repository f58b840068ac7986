"""PDF.co REST client: upload a document, then convert the uploaded file to text."""

from __future__ import annotations

import base64
from typing import Any, Optional

import httpx

from resume_intake.errors import ExtractionFailedError, UploadFailedError
from resume_intake.utils.logger import get_logger

logger = get_logger(__name__)

UPLOAD_PATH = "/v1/file/upload/base64"
CONVERT_PATH = "/v1/pdf/convert/to/text"


def _describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        body = exc.response.text[:200]
        return f"HTTP {exc.response.status_code}: {body}"
    if isinstance(exc, httpx.TimeoutException):
        return f"timed out ({type(exc).__name__})"
    return f"{type(exc).__name__}: {exc}"


class PdfCoClient:
    """Implements both halves of the external path.

    ``upload`` returns the temporary file URL PDF.co hands back; that URL is the opaque
    handle ``extract`` consumes. Every request takes an explicit timeout so the caller can
    split one budget across the two calls.
    """

    name = "pdf.co"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.pdf.co",
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise EnvironmentError("PDF_CO_API_KEY is not set.")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client()

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        # httpx bounds each phase (connect, write, read, pool) by this value, not the whole
        # call; PdfTextAcquirer enforces the overall deadline.
        response = self._client.post(
            f"{self._base_url}{path}",
            json=payload,
            headers={"x-api-key": self._api_key},
            timeout=httpx.Timeout(timeout),
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("response JSON must be an object")
        return body

    def upload(self, pdf_bytes: bytes, filename: str = "resume.pdf", *, timeout: float) -> str:
        payload = {
            "file": base64.b64encode(pdf_bytes).decode("ascii"),
            "name": filename or "resume.pdf",
        }
        try:
            body = self._post(UPLOAD_PATH, payload, timeout)
        except httpx.HTTPError as exc:
            raise UploadFailedError(f"PDF.co upload failed: {_describe_http_error(exc)}") from exc
        except ValueError as exc:
            raise UploadFailedError(f"PDF.co upload returned invalid JSON: {exc}") from exc

        if body.get("error"):
            raise UploadFailedError(f"PDF.co upload failed: {body.get('message') or 'unknown error'}")
        handle = body.get("url") or body.get("fileUrl") or body.get("file_url")
        if not isinstance(handle, str) or not handle:
            raise UploadFailedError(
                f"PDF.co upload returned no file URL (fields: {', '.join(sorted(body))})"
            )
        logger.info("Uploaded %s (%s bytes) to PDF.co", filename, len(pdf_bytes))
        return handle

    def extract(self, handle: str, *, timeout: float) -> str:
        payload = {"url": handle, "inline": True, "async": False, "password": ""}
        try:
            body = self._post(CONVERT_PATH, payload, timeout)
        except httpx.HTTPError as exc:
            raise ExtractionFailedError(
                f"PDF.co conversion failed: {_describe_http_error(exc)}"
            ) from exc
        except ValueError as exc:
            raise ExtractionFailedError(f"PDF.co conversion returned invalid JSON: {exc}") from exc

        if body.get("error"):
            raise ExtractionFailedError(
                f"PDF.co conversion failed: {body.get('message') or 'unknown error'}"
            )
        text = body.get("body")
        if not isinstance(text, str):
            raise ExtractionFailedError("PDF.co conversion returned no text body.")
        return text
