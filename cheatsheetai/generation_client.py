"""
Gemini generation client for Cheatsheet AI.

This module sends the extracted documentation to the Gemini generateContent API
and interprets the response into cheatsheet text or a typed failure.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from cheatsheetai.config import DEFAULT_API_BASE, DEFAULT_GEMINI_MODEL, AppConfig
from cheatsheetai.prompts import EXPECTED_HEADING, SYSTEM_INSTRUCTION, build_user_prompt
from cheatsheetai.schemas import GenerationFailureKind


# Finish reasons that mean the candidate was withheld by content policy
POLICY_FINISH_REASONS = frozenset({"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"})

PREVIEW_LINES = 15


class GenerationFailed(Exception):
    """The generation API did not return usable cheatsheet text."""

    def __init__(self, kind: GenerationFailureKind, message: str):
        self.kind = kind
        super().__init__(message)


@dataclass
class GenerationSettings:
    """Model, prompt and generation parameters for one client."""
    api_key: str
    model: str = DEFAULT_GEMINI_MODEL
    api_base: str = DEFAULT_API_BASE
    system_instruction: str = SYSTEM_INSTRUCTION
    expected_heading: str = EXPECTED_HEADING
    temperature: float = 0.7
    # High token limit, the API may cap lower
    max_output_tokens: int = 65536
    response_mime_type: str = "text/plain"
    # None leaves the request unbounded
    request_timeout: Optional[float] = None

    @classmethod
    def from_config(cls, config: AppConfig) -> "GenerationSettings":
        return cls(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            api_base=config.gemini_api_base,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_base.rstrip('/')}/models/{self.model}:generateContent"


class GenerationClient:
    """Client for generating cheatsheets with the Gemini API.

    Sends a single non-streaming request per call. No retries are attempted.
    """

    def __init__(self, settings: GenerationSettings):
        """Initialize the generation client.

        Args:
            settings: Model, prompt and generation parameters
        """
        self.settings = settings
        self.logger = logging.getLogger(f"cheatsheetai.{self.__class__.__name__}")

    async def generate(self, documentation: str, project_name: str) -> str:
        """Generate a cheatsheet for a project from its documentation text.

        Args:
            documentation: Extracted documentation text
            project_name: Name of the project the cheatsheet is for

        Returns:
            str: Generated cheatsheet text

        Raises:
            GenerationFailed: If no usable text was returned
        """
        self.logger.info(f"🤖 Calling Gemini API ({self.settings.model}) for {project_name}...")
        payload = self.build_payload(documentation, project_name)

        try:
            data = await self._post(payload)
        except GenerationFailed as e:
            self._log_api_error_hints(project_name, str(e))
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            message = f"Gemini API failed for {project_name}: {str(e) or e.__class__.__name__}"
            self._log_api_error_hints(project_name, message)
            raise GenerationFailed(GenerationFailureKind.API_ERROR, message) from e

        self.logger.info(f"✅ Gemini API call successful for {project_name}.")
        text = self.extract_text(data, project_name)

        if not text.strip():
            raise self.classify_empty_response(data, project_name)

        finish_reason = self._first_candidate(data).get("finishReason")
        if finish_reason == "MAX_TOKENS":
            self.logger.warning(f"⚠️ Output for {project_name} hit the token limit and may be truncated.")

        if not text.strip().startswith(self.settings.expected_heading):
            self.logger.warning(
                f"⚠️ Warning: Generated text for {project_name} does not start with the expected "
                f"'{self.settings.expected_heading}' heading. Outputting as is."
            )

        lines = text.split("\n")
        preview = "\n".join(lines[:PREVIEW_LINES]) + ("\n..." if len(lines) > PREVIEW_LINES else "")
        self.logger.info(f"✨ Generated Cheatsheet Snippet for {project_name}:\n{preview}")
        return text

    def build_payload(self, documentation: str, project_name: str) -> Dict[str, Any]:
        """Build the generateContent request body."""
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_user_prompt(documentation, project_name)}],
                }
            ],
            "systemInstruction": {"role": "system", "parts": [{"text": self.settings.system_instruction}]},
            "generationConfig": {
                "temperature": self.settings.temperature,
                "maxOutputTokens": self.settings.max_output_tokens,
                "responseMimeType": self.settings.response_mime_type,
            },
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send the request and return the decoded JSON body.

        Raises:
            GenerationFailed: On a non-200 status or a malformed body
            aiohttp.ClientError: On transport failure
        """
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.settings.api_key,
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.settings.endpoint, headers=headers, json=payload) as response:
                body = await response.text()
                if response.status != 200:
                    raise GenerationFailed(
                        GenerationFailureKind.API_ERROR,
                        f"API request failed with status {response.status}: {body}",
                    )

        try:
            data = json.loads(body)
        except ValueError as e:
            raise GenerationFailed(GenerationFailureKind.API_ERROR, f"Malformed API response: {e}") from e

        if not isinstance(data, dict):
            raise GenerationFailed(GenerationFailureKind.API_ERROR, "Malformed API response: expected a JSON object")
        return data

    def extract_text(self, data: Dict[str, Any], project_name: str) -> str:
        """Get the cheatsheet text, falling back to the first candidate's parts."""
        text = self._primary_text(data)
        if text:
            return text

        self.logger.warning(
            f"⚠️ Could not directly get text from the response for {project_name}. Checking candidates..."
        )
        parts = (self._first_candidate(data).get("content") or {}).get("parts") or []
        return "".join(part.get("text") or "" for part in parts if isinstance(part, dict))

    def _primary_text(self, data: Dict[str, Any]) -> str:
        """Text of the first candidate, empty when the response carries none."""
        if (data.get("promptFeedback") or {}).get("blockReason"):
            return ""
        candidate = self._first_candidate(data)
        if not candidate or candidate.get("finishReason") in POLICY_FINISH_REASONS:
            return ""
        parts = (candidate.get("content") or {}).get("parts") or []
        texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
        return "".join(texts)

    def classify_empty_response(self, data: Dict[str, Any], project_name: str) -> GenerationFailed:
        """Work out why a response carried no text."""
        prompt_feedback = data.get("promptFeedback") or {}
        candidate = self._first_candidate(data)
        finish_reason = candidate.get("finishReason")

        block_reason = prompt_feedback.get("blockReason")
        safety_ratings = prompt_feedback.get("safetyRatings")
        kind = GenerationFailureKind.BLOCKED if block_reason else None

        if kind is None and finish_reason and finish_reason != "STOP":
            block_reason = f"Generation stopped: {finish_reason}"
            safety_ratings = candidate.get("safetyRatings") or safety_ratings
            if finish_reason in POLICY_FINISH_REASONS:
                kind = GenerationFailureKind.BLOCKED
            else:
                kind = GenerationFailureKind.ABNORMAL_FINISH

        if kind is not None:
            self.logger.error(f"🚨 Generation failed for {project_name}. Reason: {block_reason}")
            if safety_ratings:
                self.logger.error(f"Safety Ratings: {json.dumps(safety_ratings, indent=2)}")
            return GenerationFailed(kind, f"No cheatsheet content generated for {project_name}: {block_reason}")

        self.logger.error(f"Response structure for {project_name}: {json.dumps(data, indent=2)}")
        return GenerationFailed(
            GenerationFailureKind.NO_CONTENT,
            f"No cheatsheet content generated for {project_name}.",
        )

    @staticmethod
    def _first_candidate(data: Dict[str, Any]) -> Dict[str, Any]:
        candidates: List[Any] = data.get("candidates") or []
        if candidates and isinstance(candidates[0], dict):
            return candidates[0]
        return {}

    def _log_api_error_hints(self, project_name: str, message: str) -> None:
        self.logger.error(f"❌ Error calling Gemini API or processing response for {project_name}: {message}")
        if "SAFETY" in message:
            self.logger.error(
                "A safety-related issue occurred (potentially default API filters). "
                "Check API documentation or response details if available."
            )
        elif "token" in message.lower():
            self.logger.error(
                "An error related to token limits occurred. The input might be too large or the "
                "requested 'maxOutputTokens' might exceed the model's limit."
            )
