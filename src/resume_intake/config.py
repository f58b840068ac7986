"""Process-wide configuration, read from the environment once at startup."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from resume_intake import __version__
from resume_intake.schemas.resume_record import CANONICAL_FIELDS, VALIDATION_MODES

DEFAULT_REQUIRED_FIELDS: tuple[str, ...] = ("desired_titles", "summary", "skills", "experience")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    pdf_size_threshold_bytes: int = Field(default=50 * 1024, gt=0)
    inference_max_retries: int = Field(default=2, ge=0)
    inference_backoff_base_seconds: float = Field(default=2.0, ge=0)
    inference_backoff_max_seconds: float = Field(default=30.0, ge=0)
    inference_timeout_seconds: float = Field(default=90.0, gt=0)
    external_timeout_seconds: float = Field(default=60.0, gt=0)
    default_validation_mode: str = "flexible"
    required_fields: tuple[str, ...] = DEFAULT_REQUIRED_FIELDS
    min_text_chars: int = Field(default=1, ge=1)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    pdf_co_api_key: str | None = None
    pdf_co_base_url: str = "https://api.pdf.co"
    worker_version: str = __version__

    @field_validator("default_validation_mode")
    @classmethod
    def _check_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in VALIDATION_MODES:
            raise ValueError(f"validation mode must be one of {VALIDATION_MODES}, got {value!r}")
        return normalized

    @field_validator("required_fields")
    @classmethod
    def _check_required_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [name for name in value if name not in CANONICAL_FIELDS]
        if unknown:
            raise ValueError(f"Unknown required fields: {', '.join(unknown)}")
        return value


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(**overrides: object) -> Settings:
    load_dotenv()
    raw: dict[str, object] = {}
    env_map = {
        "pdf_size_threshold_bytes": "RESUME_PDF_SIZE_THRESHOLD_BYTES",
        "inference_max_retries": "RESUME_INFERENCE_MAX_RETRIES",
        "inference_backoff_base_seconds": "RESUME_INFERENCE_BACKOFF_SECONDS",
        "inference_backoff_max_seconds": "RESUME_INFERENCE_BACKOFF_MAX_SECONDS",
        "inference_timeout_seconds": "RESUME_INFERENCE_TIMEOUT_SECONDS",
        "external_timeout_seconds": "RESUME_EXTERNAL_TIMEOUT_SECONDS",
        "default_validation_mode": "RESUME_VALIDATION_MODE",
        "min_text_chars": "RESUME_MIN_TEXT_CHARS",
        "openai_api_key": "OPENAI_API_KEY",
        "openai_model": "OPENAI_MODEL",
        "pdf_co_api_key": "PDF_CO_API_KEY",
        "pdf_co_base_url": "PDF_CO_BASE_URL",
        "worker_version": "RESUME_WORKER_VERSION",
    }
    for field_name, env_name in env_map.items():
        value = _env_str(env_name)
        if value is not None:
            raw[field_name] = value

    required = _env_str("RESUME_REQUIRED_FIELDS")
    if required is not None:
        raw["required_fields"] = tuple(
            part.strip() for part in required.split(",") if part.strip()
        )

    raw.update(overrides)
    return Settings.model_validate(raw)
