from __future__ import annotations

from siteinsight.adapters.base import AnalysisPrompt, FetchedContent

ELLIPSIS = "..."


def excerpt(content: str, max_chars: int) -> str:
    """Bound the page text handed to the analyzer; never fails on long input."""
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + ELLIPSIS


def build_analysis_prompt(url: str, fetched: FetchedContent, max_chars: int) -> AnalysisPrompt:
    return AnalysisPrompt(
        url=url,
        metadata=fetched.metadata,
        excerpt=excerpt(fetched.content, max_chars),
    )


def render_prompt(prompt: AnalysisPrompt) -> str:
    title = prompt.metadata.title or "No title"
    description = prompt.metadata.description or "No description"
    return (
        "Analyze this website comprehensively and provide detailed insights.\n\n"
        f"URL: {prompt.url}\n"
        f"Title: {title}\n"
        f"Description: {description}\n\n"
        "Content Preview:\n"
        f"{prompt.excerpt}\n\n"
        "Please analyze and score (0-100, integers) the following areas:\n"
        "1. Performance (load speed, optimization)\n"
        "2. SEO (meta tags, structure, content)\n"
        "3. Accessibility (WCAG compliance, usability)\n"
        "4. Design (visual appeal, consistency, branding)\n"
        "5. User Experience (navigation, content clarity, mobile-friendliness)\n\n"
        "For each area, provide specific recommendations for improvement. "
        "Also identify any critical issues that need immediate attention.\n"
        "Provide realistic scores and detailed, actionable recommendations. "
        "Return **only** JSON matching the supplied schema."
    )
