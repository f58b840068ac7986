from __future__ import annotations

import sys
import tempfile
import unittest
from io import BytesIO
from pathlib import Path

from pypdf import PdfWriter

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from resume_intake.errors import ErrorKind, ExtractionFailedError  # noqa: E402
from resume_intake.services.pdf_extractor import (  # noqa: E402
    PypdfInlineExtractor,
    extract_text_from_pdf,
    extract_text_from_pdf_bytes,
)


def _make_text_pdf(line: str) -> bytes:
    stream = f"BT /F1 12 Tf 72 720 Td ({line}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(output)


def _make_blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class ExtractTextFromPdfBytesTests(unittest.TestCase):
    def test_extracts_text_with_page_marker(self) -> None:
        text = extract_text_from_pdf_bytes(_make_text_pdf("Jane Doe Senior Engineer"))

        self.assertTrue(text.startswith("[Page 1]"))
        self.assertIn("Jane Doe Senior Engineer", text)

    def test_inline_extractor_delegates(self) -> None:
        text = PypdfInlineExtractor().extract(_make_text_pdf("Backend Developer"))
        self.assertIn("Backend Developer", text)

    def test_blank_pdf_has_no_extractable_text(self) -> None:
        with self.assertRaises(ExtractionFailedError) as ctx:
            extract_text_from_pdf_bytes(_make_blank_pdf())
        self.assertEqual(ctx.exception.kind, ErrorKind.EXTRACTION_FAILED)

    def test_garbage_bytes_are_extraction_failures(self) -> None:
        for payload in (b"", b"definitely not a pdf"):
            with self.subTest(payload=payload):
                with self.assertRaises(ExtractionFailedError):
                    extract_text_from_pdf_bytes(payload)


class ExtractTextFromPdfPathTests(unittest.TestCase):
    def test_reads_pdf_from_disk(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            pdf_path = Path(temp_dir) / "resume.pdf"
            pdf_path.write_bytes(_make_text_pdf("Data Analyst"))
            self.assertIn("Data Analyst", extract_text_from_pdf(pdf_path))

    def test_rejects_missing_and_non_pdf_paths(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(FileNotFoundError):
                extract_text_from_pdf(Path(temp_dir) / "missing.pdf")
            notes = Path(temp_dir) / "notes.txt"
            notes.write_text("hello", encoding="utf-8")
            with self.assertRaises(ValueError):
                extract_text_from_pdf(notes)


if __name__ == "__main__":
    unittest.main()
