from __future__ import annotations

import sys
import threading
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import openai

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from resume_intake.errors import (  # noqa: E402
    InferenceFailedError,
    PipelineCancelledError,
    TransientInferenceError,
)
from resume_intake.services.resume_extractor import (  # noqa: E402
    InferenceOrchestrator,
    OpenAIInference,
    build_instruction_prompt,
    get_prompt_version,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class _ScriptedCapability:
    model_name = "stub-model"

    def __init__(self, outcomes: list[object]) -> None:
        self._outcomes = list(outcomes)
        self.prompts: list[str] = []
        self.calls = 0

    def run(self, prompt: str, input_text: str) -> object:
        self.calls += 1
        self.prompts.append(prompt)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _chat_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class InstructionPromptTests(unittest.TestCase):
    def test_prompt_language_selection(self) -> None:
        english = build_instruction_prompt("en")
        russian = build_instruction_prompt("ru-RU")
        german = build_instruction_prompt("de")

        self.assertNotEqual(english, russian)
        self.assertIn("'de'", german)
        self.assertTrue(german.startswith(english.split("\n\n")[0]))
        for prompt in (english, russian, german):
            self.assertIn("JSON schema:", prompt)
            self.assertIn("desired_titles", prompt)

    def test_prompt_version_is_stable_per_language(self) -> None:
        self.assertEqual(get_prompt_version("en"), get_prompt_version("EN"))
        self.assertNotEqual(get_prompt_version("en"), get_prompt_version("ru"))
        self.assertEqual(len(get_prompt_version("en")), 12)


class InferenceOrchestratorTests(unittest.TestCase):
    def test_returns_raw_output_after_single_attempt(self) -> None:
        capability = _ScriptedCapability(['{"summary": "x"}'])
        result = InferenceOrchestrator(capability, sleep=lambda _: None).extract_structured("text")

        self.assertEqual(result.raw_output, '{"summary": "x"}')
        self.assertEqual(result.attempts, 1)
        self.assertEqual(result.model, "stub-model")
        self.assertEqual(result.prompt_version, get_prompt_version("en"))

    def test_retries_transient_failures_with_exponential_backoff(self) -> None:
        sleeps: list[float] = []
        capability = _ScriptedCapability(
            [TransientInferenceError("503"), TransientInferenceError("timeout"), "{}"]
        )
        orchestrator = InferenceOrchestrator(
            capability, max_retries=2, backoff_base_seconds=2.0, sleep=sleeps.append
        )

        result = orchestrator.extract_structured("text")

        self.assertEqual(result.attempts, 3)
        self.assertEqual(sleeps, [2.0, 4.0])

    def test_retry_bound_is_max_retries_plus_one(self) -> None:
        for max_retries in (0, 1, 3):
            with self.subTest(max_retries=max_retries):
                capability = _ScriptedCapability(
                    [TransientInferenceError("503")] * (max_retries + 2)
                )
                orchestrator = InferenceOrchestrator(
                    capability, max_retries=max_retries, sleep=lambda _: None
                )
                with self.assertRaises(InferenceFailedError) as ctx:
                    orchestrator.extract_structured("text")
                self.assertEqual(capability.calls, max_retries + 1)
                self.assertIn(f"after {max_retries + 1} attempt(s)", ctx.exception.message)

    def test_garbage_output_is_not_retried(self) -> None:
        capability = _ScriptedCapability(["I am not JSON", "{}"])
        result = InferenceOrchestrator(capability, sleep=lambda _: None).extract_structured("text")

        self.assertEqual(result.raw_output, "I am not JSON")
        self.assertEqual(capability.calls, 1)

    def test_permanent_failure_is_not_retried(self) -> None:
        capability = _ScriptedCapability([InferenceFailedError("bad request"), "{}"])
        with self.assertRaises(InferenceFailedError):
            InferenceOrchestrator(capability, sleep=lambda _: None).extract_structured("text")
        self.assertEqual(capability.calls, 1)

    def test_language_hint_selects_prompt(self) -> None:
        capability = _ScriptedCapability(["{}"])
        InferenceOrchestrator(capability).extract_structured("текст", language_hint="ru")
        self.assertEqual(capability.prompts[0], build_instruction_prompt("ru"))

    def test_cancel_before_first_attempt(self) -> None:
        capability = _ScriptedCapability(["{}"])
        cancel_event = threading.Event()
        cancel_event.set()

        with self.assertRaises(PipelineCancelledError):
            InferenceOrchestrator(capability).extract_structured("text", cancel_event=cancel_event)
        self.assertEqual(capability.calls, 0)

    def test_cancel_during_backoff_stops_retrying(self) -> None:
        cancel_event = threading.Event()

        class _CancellingCapability(_ScriptedCapability):
            def run(self, prompt: str, input_text: str) -> object:
                cancel_event.set()
                return super().run(prompt, input_text)

        capability = _CancellingCapability([TransientInferenceError("503"), "{}"])
        with self.assertRaises(PipelineCancelledError):
            InferenceOrchestrator(capability, backoff_base_seconds=5.0).extract_structured(
                "text", cancel_event=cancel_event
            )
        self.assertEqual(capability.calls, 1)


class OpenAIInferenceTests(unittest.TestCase):
    @patch("resume_intake.services.resume_extractor.OpenAI")
    def test_run_requests_json_object_and_returns_content(self, mock_openai) -> None:
        client = mock_openai.return_value
        client.chat.completions.create.return_value = _chat_response('{"summary": "x"}')

        inference = OpenAIInference(api_key="test-key", model="gpt-4o-mini", timeout=30.0)
        output = inference.run("prompt", "resume text")

        self.assertEqual(output, '{"summary": "x"}')
        mock_openai.assert_called_once_with(api_key="test-key", timeout=30.0, max_retries=0)
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "prompt"})

    @patch("resume_intake.services.resume_extractor.OpenAI")
    def test_transient_api_errors_become_retryable(self, mock_openai) -> None:
        client = mock_openai.return_value
        inference = OpenAIInference(api_key="test-key")
        for error in (
            openai.APIConnectionError(request=_REQUEST),
            openai.RateLimitError(
                "slow down", response=httpx.Response(429, request=_REQUEST), body=None
            ),
            openai.InternalServerError(
                "upstream", response=httpx.Response(503, request=_REQUEST), body=None
            ),
        ):
            with self.subTest(error=type(error).__name__):
                client.chat.completions.create.side_effect = error
                with self.assertRaises(TransientInferenceError):
                    inference.run("prompt", "text")

    @patch("resume_intake.services.resume_extractor.OpenAI")
    def test_client_errors_are_permanent(self, mock_openai) -> None:
        client = mock_openai.return_value
        client.chat.completions.create.side_effect = openai.BadRequestError(
            "bad", response=httpx.Response(400, request=_REQUEST), body=None
        )
        with self.assertRaises(InferenceFailedError):
            OpenAIInference(api_key="test-key").run("prompt", "text")

    @patch("resume_intake.services.resume_extractor.OpenAI")
    def test_empty_choices_return_empty_string(self, mock_openai) -> None:
        mock_openai.return_value.chat.completions.create.return_value = SimpleNamespace(choices=[])
        self.assertEqual(OpenAIInference(api_key="test-key").run("prompt", "text"), "")

    def test_missing_api_key_is_rejected(self) -> None:
        with self.assertRaises(EnvironmentError):
            OpenAIInference(api_key="")


if __name__ == "__main__":
    unittest.main()
