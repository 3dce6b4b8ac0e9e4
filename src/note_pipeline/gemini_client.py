"""Text-generation client for the Gemini generateContent REST endpoint."""

import json
from typing import Any

import httpx

from src.utils.clients import get_http_client
from src.utils.logging import get_logger

from .config import NoteGeneratorConfig
from .errors import (
    EmptyUpstreamResponseError,
    MalformedOutputError,
    SafetyBlockedError,
    UpstreamUnavailableError,
)

logger = get_logger(__name__)

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


def extract_json(text: str) -> dict[str, Any]:
    """Parse the JSON object spanning the first "{" to the last "}" of text.

    Models often wrap the requested JSON in prose or code fences; everything
    outside that span is ignored.

    Args:
        text: Free-form generated text.

    Returns:
        The parsed JSON object.

    Raises:
        MalformedOutputError: If no such span exists or it is not a JSON object.

    Examples:
        >>> extract_json('Here you go: {"title": "Intro"} Hope this helps.')
        {"title": "Intro"}
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise MalformedOutputError("No JSON object found in generated text")

    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Generated JSON could not be parsed: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedOutputError("Generated JSON is not an object")
    return parsed


class GeminiClient:
    """Client for free-form text generation.

    Each failure mode maps to its own error kind so callers can tell a
    blocked answer from a transport problem. Transport failures, 429 and 5xx
    statuses are retried at most config.max_retries times.
    """

    def __init__(
        self,
        config: NoteGeneratorConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client with configuration.

        Args:
            config: Configuration with model name, base URL and retry count.
            http_client: Shared client; one is created when omitted.
        """
        self.config = config
        self.client = http_client or get_http_client(config.request_timeout_seconds)
        logger.info(
            "gemini_client_initialized",
            model=config.gemini_model,
            max_retries=config.max_retries,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.config.gemini_base_url}/models/{self.config.gemini_model}:generateContent"

    async def generate(
        self, prompt: str, api_key: str, max_output_tokens: int = 1024
    ) -> str:
        """Send a prompt and return the first candidate's text.

        Args:
            prompt: Instruction text.
            api_key: Gemini API key for this request.
            max_output_tokens: Generation length limit.

        Returns:
            Generated text of the first candidate.

        Raises:
            UpstreamUnavailableError: Transport failure or non-success status
                after the allowed retries.
            EmptyUpstreamResponseError: No candidate or no text in the response.
            SafetyBlockedError: The candidate finished with reason SAFETY.
        """
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": max_output_tokens,
                "topK": 40,
                "topP": 0.95,
            },
            "safetySettings": SAFETY_SETTINGS,
        }

        attempts = max(self.config.max_retries, 0) + 1
        for attempt in range(attempts):
            try:
                data = await self._post(body, api_key)
                break
            except UpstreamUnavailableError as e:
                logger.warning(
                    "generation_attempt_failed",
                    attempt=attempt + 1,
                    status_code=e.status_code,
                    error=str(e),
                )
                retryable = e.status_code is None or e.status_code == 429 or e.status_code >= 500
                if not retryable or attempt >= attempts - 1:
                    raise

        return self._candidate_text(data)

    async def _post(self, body: dict[str, Any], api_key: str) -> Any:
        try:
            response = await self.client.post(
                self.endpoint, params={"key": api_key}, json=body
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                f"Gemini request failed: {type(e).__name__}"
            ) from e

        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"Gemini returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise EmptyUpstreamResponseError("Gemini returned a non-JSON body") from e

    @staticmethod
    def _candidate_text(data: Any) -> str:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates:
            raise EmptyUpstreamResponseError("Gemini returned no candidates")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise EmptyUpstreamResponseError("Gemini returned a malformed candidate")
        if candidate.get("finishReason") == "SAFETY":
            raise SafetyBlockedError("Gemini blocked the response (finishReason SAFETY)")

        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        text = "".join(
            str(part.get("text", "")) for part in parts if isinstance(part, dict)
        )
        if not text.strip():
            raise EmptyUpstreamResponseError("Gemini candidate contained no text")

        logger.debug("generation_completed", response_length=len(text))
        return text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
