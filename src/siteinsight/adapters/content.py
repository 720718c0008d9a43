from __future__ import annotations

import logging

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError

from siteinsight.adapters.base import FetchedContent, PageMetadata
from siteinsight.adapters.browser import BrowserSession
from siteinsight.config import Settings
from siteinsight.errors import FetchFailure

logger = logging.getLogger(__name__)

_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "blockquote", "pre"]
_STRIP_TAGS = ["script", "style", "noscript", "template", "svg"]


def _clean_text(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.split())


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return _clean_text(tag["content"])
    return ""


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    title = _clean_text(soup.title.string) if soup.title and soup.title.string else ""
    title = title or _meta_content(soup, property="og:title")
    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    return PageMetadata(title=title or None, description=description or None)


def html_to_markdown(soup: BeautifulSoup) -> str:
    """Flatten the document into markdown-ish blocks (headings, paragraphs, list items)."""
    for tag in soup.find_all(_STRIP_TAGS):
        tag.decompose()
    root = soup.body or soup
    lines: list[str] = []
    for element in root.find_all(_BLOCK_TAGS):
        # Nested blocks (a <p> inside an <li>) are emitted by their innermost tag.
        if element.find(_BLOCK_TAGS):
            continue
        text = _clean_text(element.get_text(" ", strip=True))
        if not text:
            continue
        name = element.name
        if name.startswith("h") and name[1:].isdigit():
            lines.append(f"{'#' * int(name[1:])} {text}")
        elif name == "li":
            lines.append(f"- {text}")
        elif name == "blockquote":
            lines.append(f"> {text}")
        else:
            lines.append(text)
    return "\n\n".join(lines)


def extract_page(html: str, fallback_text: str = "") -> FetchedContent:
    soup = BeautifulSoup(html, "html.parser")
    metadata = extract_metadata(soup)
    content = html_to_markdown(soup) or _clean_text(fallback_text)
    return FetchedContent(content=content, metadata=metadata)


class BrowserContentFetcher:
    """Renders a page in headless Chromium and returns its text as markdown."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def fetch(self, url: str) -> FetchedContent:
        try:
            async with BrowserSession(self.settings) as session:
                async with session.page() as page:
                    response = await page.goto(url, wait_until="networkidle")
                    status = response.status if response else None
                    html = await page.content()
                    text = await page.inner_text("body")
        except PlaywrightError as exc:
            raise FetchFailure(f"Failed to load {url}: {exc}", payload={"url": url}) from exc

        if status is not None and status >= 400:
            raise FetchFailure(
                f"{url} responded with HTTP {status}", payload={"url": url, "status": status}
            )
        fetched = extract_page(html, text)
        logger.debug("Fetched %s (%d chars, status %s)", url, len(fetched.content), status)
        return fetched
