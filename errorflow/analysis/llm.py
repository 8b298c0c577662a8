"""LLM-backed error analyser.

Talks to any OpenAI-compatible ``/v1/chat/completions`` endpoint (Ollama
serves one out of the box).  Every failure mode, whether transport, non-2xx,
non-JSON or non-object output, is raised as ProviderError so the agent can
fall back to the keyword rules.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

import httpx
import structlog

from errorflow.analysis.prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE
from errorflow.errors import ProviderError
from errorflow.models.analysis import ErrorAnalysis
from errorflow.models.config import LLMConfig

_log = structlog.get_logger(component="analysis.llm")

DEFAULT_CONFIDENCE = 50
DEFAULT_SUGGESTIONS = ("Review error logs", "Check recent changes")

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMAnalyzer:
    """Async client producing ErrorAnalysis values from an LLM.

    Args:
        config:    Endpoint, model and sampling parameters.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(self, config: LLMConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=config.endpoint,
            timeout=config.timeout_seconds,
            headers=headers,
            transport=transport,
        )

    async def analyze(self, error_message: str, category: str) -> ErrorAnalysis:
        """Ask the model to classify *error_message*.

        Raises:
            ProviderError: on any failure to obtain a JSON object from the model.
        """
        body = {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT_TEMPLATE.format(category=category, error_message=error_message),
                },
            ],
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "stream": False,
        }
        raw = await self._post_with_retries(body)
        parsed = _parse_json_object(_extract_content(raw))
        try:
            return _to_analysis(parsed, category)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ProviderError("unparsable_output", f"cannot map model output: {exc}") from exc

    async def health_check(self) -> bool:
        """Return True when the endpoint answers the model listing call."""
        try:
            response = await self._client.get("/v1/models")
        except httpx.HTTPError as exc:
            _log.warning("llm_health_check_failed", error=str(exc))
            return False
        return response.is_success

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post_with_retries(self, body: dict[str, Any]) -> Any:
        attempts = self._config.max_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.post("/v1/chat/completions", json=body)
            except httpx.TimeoutException:
                last_error = "timeout"
                _log.warning("llm_request_timeout", attempt=attempt)
                continue
            except httpx.HTTPError as exc:
                last_error = str(exc)
                _log.warning("llm_http_error", attempt=attempt, error=last_error)
                continue

            if response.status_code >= 500:
                last_error = f"status {response.status_code}"
                _log.warning("llm_server_error", attempt=attempt, status_code=response.status_code)
                continue
            if not response.is_success:
                raise ProviderError("http_status", f"status {response.status_code}: {response.text[:200]}")
            try:
                return response.json()
            except ValueError as exc:
                raise ProviderError("invalid_envelope", str(exc)) from exc

        raise ProviderError("unavailable", f"{attempts} attempt(s) failed, last: {last_error}")


def _extract_content(raw: Any) -> str:
    """Pull the assistant text out of the known response envelopes."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        choices = raw.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            message = first.get("message") if isinstance(first, dict) else None
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        message = raw.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        for key in ("response", "text"):
            if isinstance(raw.get(key), str):
                return raw[key]
    raise ProviderError("invalid_envelope", "no assistant content in response")


def _parse_json_object(content: str) -> dict[str, Any]:
    text = _FENCE_RE.sub("", content.strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ProviderError("unparsable_output", "no JSON object in model output")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ProviderError("unparsable_output", str(exc)) from exc
    if not isinstance(parsed, dict):
        raise ProviderError("unparsable_output", "model output is not a JSON object")
    return parsed


def _to_analysis(parsed: dict[str, Any], category: str) -> ErrorAnalysis:
    """Map model JSON onto ErrorAnalysis, filling gaps with defaults."""
    confidence = parsed.get("confidence")
    if not isinstance(confidence, int | float) or isinstance(confidence, bool):
        _log.info("llm_response_incomplete", missing="confidence")
        confidence = DEFAULT_CONFIDENCE
    elif not math.isfinite(confidence):
        raise ProviderError("unparsable_output", f"non-finite confidence: {confidence}")

    suggestions = parsed.get("suggestions")
    if not isinstance(suggestions, list) or not suggestions:
        suggestions = list(DEFAULT_SUGGESTIONS)

    patterns = parsed.get("relatedPatterns", parsed.get("related_patterns"))
    if not isinstance(patterns, list):
        patterns = []

    return ErrorAnalysis(
        type=str(parsed.get("type") or category),
        category=category,
        root_cause=str(parsed.get("rootCause") or parsed.get("root_cause") or "Unknown cause"),
        suggestions=[str(s) for s in suggestions],
        related_patterns=[str(p) for p in patterns],
        confidence=int(max(0, min(100, round(confidence)))),
    )
