from __future__ import annotations

import hashlib
import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from importlib.resources import files
from typing import Any, Optional, Protocol

import openai
from openai import OpenAI
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from resume_intake.config import Settings
from resume_intake.errors import InferenceFailedError, PipelineCancelledError, TransientInferenceError
from resume_intake.schemas.resume_record import CanonicalResumeRecord
from resume_intake.utils.logger import get_logger

logger = get_logger(__name__)

PROMPT_LANGUAGES = ("en", "ru")


class InferenceCapability(Protocol):
    model_name: str

    def run(self, prompt: str, input_text: str) -> Any: ...


@lru_cache(maxsize=None)
def _load_resume_prompt(language: str) -> str:
    prompt_path = files("resume_intake").joinpath("prompts", f"resume_parser_{language}.md")
    try:
        prompt_text = prompt_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError as exc:
        raise FileNotFoundError(
            f"Missing prompt file 'resume_intake/prompts/resume_parser_{language}.md'. "
            "Ensure it is packaged and installed."
        ) from exc
    if not prompt_text:
        raise ValueError(f"Prompt file 'resume_intake/prompts/resume_parser_{language}.md' is empty.")
    return prompt_text


def _prompt_language(language_hint: str | None) -> str:
    return (language_hint or "en").strip().lower().replace("_", "-").split("-")[0] or "en"


def build_instruction_prompt(language_hint: str | None) -> str:
    language = _prompt_language(language_hint)
    prompt_language = language if language in PROMPT_LANGUAGES else "en"
    sections = [_load_resume_prompt(prompt_language)]
    if language != prompt_language:
        sections.append(
            f"The resume is written in the language with ISO 639-1 code '{language}'. "
            "Keep job titles, company names and skill names in that language; "
            "JSON keys and enumerated values stay in English."
        )
    schema = CanonicalResumeRecord.model_json_schema()
    sections.append(f"JSON schema:\n{json.dumps(schema, indent=2)}")
    return "\n\n".join(sections)


def get_prompt_version(language_hint: str | None) -> str:
    prompt = build_instruction_prompt(language_hint)
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:12]


class OpenAIInference:
    """Hosted model capability. SDK retries are off; InferenceOrchestrator owns retry."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 90.0) -> None:
        if not api_key:
            raise EnvironmentError("OPENAI_API_KEY is not set.")
        self.model_name = model
        self._timeout = timeout
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIInference":
        return cls(
            api_key=settings.openai_api_key or "",
            model=settings.openai_model,
            timeout=settings.inference_timeout_seconds,
        )

    def run(self, prompt: str, input_text: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model_name,
                temperature=0.1,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": f"Resume text:\n\n{input_text}"},
                ],
                timeout=self._timeout,
            )
        except (
            openai.APIConnectionError,
            openai.InternalServerError,
            openai.RateLimitError,
        ) as exc:
            raise TransientInferenceError(f"{type(exc).__name__}: {exc}") from exc
        except openai.APIError as exc:
            raise InferenceFailedError(f"OpenAI request rejected: {type(exc).__name__}: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


@dataclass(frozen=True)
class InferenceResult:
    raw_output: Any
    attempts: int
    model: str
    prompt_version: str


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Inference attempt %s failed with a transient error (%s); retrying in %.1fs",
        retry_state.attempt_number,
        exc,
        wait,
    )


class InferenceOrchestrator:
    """Build the language-specific prompt and call the model with bounded retries.

    Only ``TransientInferenceError`` is retried, up to ``max_retries`` extra attempts with
    exponential backoff starting at ``backoff_base_seconds``. Whatever the model returns is
    handed back untouched; judging its shape is the validator's job.
    """

    def __init__(
        self,
        capability: InferenceCapability,
        max_retries: int = 2,
        backoff_base_seconds: float = 2.0,
        backoff_max_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._capability = capability
        self._max_retries = max_retries
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, settings: Settings, capability: Optional[InferenceCapability] = None
    ) -> "InferenceOrchestrator":
        return cls(
            capability=capability or OpenAIInference.from_settings(settings),
            max_retries=settings.inference_max_retries,
            backoff_base_seconds=settings.inference_backoff_base_seconds,
            backoff_max_seconds=settings.inference_backoff_max_seconds,
        )

    @property
    def model_name(self) -> str:
        return str(getattr(self._capability, "model_name", type(self._capability).__name__))

    def extract_structured(
        self,
        text: str,
        language_hint: str = "en",
        cancel_event: Optional[threading.Event] = None,
    ) -> InferenceResult:
        prompt = build_instruction_prompt(language_hint)
        attempts = 0

        def backoff(seconds: float) -> None:
            if cancel_event is None:
                self._sleep(seconds)
            elif cancel_event.wait(seconds):
                raise PipelineCancelledError("Request cancelled during inference backoff.")

        retrying = Retrying(
            retry=retry_if_exception_type(TransientInferenceError),
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff_base, max=self._backoff_max),
            sleep=backoff,
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    attempts += 1
                    if cancel_event is not None and cancel_event.is_set():
                        raise PipelineCancelledError("Request cancelled before inference.")
                    raw_output = self._capability.run(prompt, text)
        except TransientInferenceError as exc:
            raise InferenceFailedError(
                f"Inference failed after {attempts} attempt(s): {exc}"
            ) from exc

        return InferenceResult(
            raw_output=raw_output,
            attempts=attempts,
            model=self.model_name,
            prompt_version=hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:12],
        )
