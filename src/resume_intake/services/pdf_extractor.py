from __future__ import annotations

import sys
from io import BytesIO
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from resume_intake.errors import ExtractionFailedError


def extract_text_from_pdf_bytes(pdf_bytes: bytes) -> str:
    if not pdf_bytes:
        raise ExtractionFailedError("PDF payload is empty.")

    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        if reader.is_encrypted:
            raise ExtractionFailedError("PDF is encrypted.")
        collected_pages: list[str] = []
        for page_number, page in enumerate(reader.pages, start=1):
            page_text = (page.extract_text() or "").strip()
            if not page_text:
                continue
            collected_pages.append(f"[Page {page_number}]\n{page_text}")
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise ExtractionFailedError(f"Unreadable PDF: {exc}") from exc

    if not collected_pages:
        raise ExtractionFailedError("No extractable text found in PDF.")

    return "\n\n".join(collected_pages)


class PypdfInlineExtractor:
    """In-process text extraction for small documents."""

    name = "pypdf"

    def extract(self, pdf_bytes: bytes) -> str:
        return extract_text_from_pdf_bytes(pdf_bytes)


def extract_text_from_pdf(pdf_path: str | Path) -> str:
    path = Path(pdf_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"PDF file not found: {path}")
    if path.suffix.lower() != ".pdf":
        raise ValueError(f"Input file must be a PDF: {path}")
    return extract_text_from_pdf_bytes(path.read_bytes())


def main() -> int:
    if len(sys.argv) != 2:
        print("Usage: python -m resume_intake.services.pdf_extractor /path/to/input.pdf", file=sys.stderr)
        return 1

    try:
        extracted_text = extract_text_from_pdf(sys.argv[1])
    except (FileNotFoundError, ValueError, ExtractionFailedError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except PermissionError:
        print("Error: Unable to read the PDF due to OS permissions.", file=sys.stderr)
        return 1

    print(extracted_text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
