from __future__ import annotations

from siteinsight.adapters.base import StructuredAnalyzer
from siteinsight.config import Settings
from siteinsight.llm.gemini_client import GeminiClient
from siteinsight.llm.grok_client import GrokClient


def create_analyzer(settings: Settings) -> StructuredAnalyzer:
    provider = settings.llm_provider.lower()
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY is required when LLM_PROVIDER=gemini")
        return GeminiClient(settings)
    if provider == "grok":
        if not settings.grok_api_key:
            raise RuntimeError("GROK_API_KEY is required when LLM_PROVIDER=grok")
        return GrokClient(settings)
    raise ValueError(f"Unsupported LLM_PROVIDER: {settings.llm_provider}")
