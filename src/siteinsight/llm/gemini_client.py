from __future__ import annotations

from typing import Any

import httpx

from siteinsight.adapters.base import AnalysisPrompt
from siteinsight.config import Settings
from siteinsight.errors import GenerationFailure
from siteinsight.llm.parsing import parse_json_text
from siteinsight.llm.prompt import render_prompt
from siteinsight.report.models import ReportBody
from siteinsight.report.schema import parse_report_body

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiContentError(GenerationFailure):
    """Raised when the Gemini API responds without usable text."""


class GeminiClient:
    """Lightweight wrapper around the Gemini REST API."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None):
        if not settings.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY is not configured")
        self.settings = settings
        self._client = client or httpx.AsyncClient(timeout=90)

    async def analyze(self, prompt: AnalysisPrompt, schema: dict[str, Any]) -> ReportBody:
        url = f"{GEMINI_BASE_URL}/models/{self.settings.gemini_model}:generateContent"
        try:
            response = await self._client.post(
                url,
                params={"key": self.settings.gemini_api_key},
                json={
                    "contents": [
                        {
                            "role": "user",
                            "parts": [
                                {"text": render_prompt(prompt)},
                            ],
                        }
                    ],
                    "generationConfig": {
                        "temperature": 0.3,
                        "topP": 0.95,
                        "maxOutputTokens": 4096,
                        "responseMimeType": "application/json",
                        "responseSchema": schema,
                    },
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GeminiContentError(f"Gemini request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise GeminiContentError("Gemini returned a non-JSON response body") from exc
        text = _extract_text(payload)
        return parse_report_body(parse_json_text(text, provider="Gemini"))

    async def aclose(self) -> None:
        await self._client.aclose()


def _extract_text(payload: dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        raise GeminiContentError("Gemini returned no candidates", payload=payload)

    for candidate in candidates:
        parts = candidate.get("content", {}).get("parts") or []
        for part in parts:
            text = part.get("text")
            if text:
                return text

    finish_reason = candidates[0].get("finishReason")
    block_reason = payload.get("promptFeedback", {}).get("blockReason")
    details: list[str] = []
    if finish_reason:
        details.append(f"finishReason={finish_reason}")
    if block_reason:
        details.append(f"blockReason={block_reason}")

    message = "Gemini response had no text part"
    if details:
        message = f"{message} ({', '.join(details)})"
    raise GeminiContentError(message, payload=payload)
