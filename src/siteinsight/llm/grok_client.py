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

GROK_BASE_URL = "https://api.x.ai/v1"


class GrokContentError(GenerationFailure):
    """Raised when Grok responds without usable JSON."""


class GrokClient:
    """Lightweight wrapper for xAI's Grok chat completions API."""

    def __init__(self, settings: Settings, *, client: httpx.AsyncClient | None = None):
        if not settings.grok_api_key:
            raise RuntimeError("GROK_API_KEY is not configured")
        self.settings = settings
        self._client = client or httpx.AsyncClient(timeout=90)
        self._headers = {"Authorization": f"Bearer {settings.grok_api_key}"}

    async def analyze(self, prompt: AnalysisPrompt, schema: dict[str, Any]) -> ReportBody:
        try:
            response = await self._client.post(
                f"{GROK_BASE_URL}/chat/completions",
                headers=self._headers,
                json={
                    "model": self.settings.grok_model,
                    "temperature": 0.2,
                    "messages": [
                        {
                            "role": "system",
                            "content": (
                                "You are a website auditor who scores performance, SEO, "
                                "accessibility, design and user experience. "
                                "Respond strictly with JSON."
                            ),
                        },
                        {"role": "user", "content": render_prompt(prompt)},
                    ],
                    "response_format": {
                        "type": "json_schema",
                        "json_schema": {
                            "name": "website_analysis",
                            "schema": schema,
                        },
                    },
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GrokContentError(f"Grok request failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise GrokContentError("Grok returned a non-JSON response body") from exc
        text = _extract_text(payload)
        return parse_report_body(parse_json_text(text, provider="Grok"))

    async def aclose(self) -> None:
        await self._client.aclose()


def _extract_text(payload: dict[str, Any]) -> str:
    choices = payload.get("choices") or []
    if not choices:
        raise GrokContentError("Grok returned no choices", payload=payload)

    for choice in choices:
        message = choice.get("message") or {}
        content = message.get("content")
        if isinstance(content, list):
            content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
        if isinstance(content, str) and content.strip():
            return content

    finish_reason = choices[0].get("finish_reason")
    details = f"finish_reason={finish_reason}" if finish_reason else "no finish_reason provided"
    raise GrokContentError(f"Grok response had no text part ({details})", payload=payload)
