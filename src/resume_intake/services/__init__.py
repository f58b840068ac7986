from resume_intake.services.date_normalizer import normalize as normalize_date
from resume_intake.services.pdf_extractor import PypdfInlineExtractor, extract_text_from_pdf_bytes
from resume_intake.services.response_assembler import ResponseAssembler
from resume_intake.services.resume_extractor import InferenceOrchestrator
from resume_intake.services.schema_validator import SchemaValidator
from resume_intake.services.text_acquirer import PdfTextAcquirer

__all__ = [
    "extract_text_from_pdf_bytes",
    "normalize_date",
    "InferenceOrchestrator",
    "PdfTextAcquirer",
    "PypdfInlineExtractor",
    "ResponseAssembler",
    "SchemaValidator",
]
