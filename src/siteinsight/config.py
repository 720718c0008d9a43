from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central application settings loaded from environment variables."""

    llm_provider: Literal["gemini", "grok"] = Field(default="gemini", alias="LLM_PROVIDER")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    grok_api_key: str | None = Field(default=None, alias="GROK_API_KEY")
    grok_model: str = Field(default="grok-2-latest", alias="GROK_MODEL")
    playwright_headless: bool = Field(default=True, alias="PLAYWRIGHT_HEADLESS")
    navigation_timeout: int = Field(default=45, ge=5, alias="NAVIGATION_TIMEOUT")
    content_excerpt_chars: int = Field(default=2000, ge=100, alias="CONTENT_EXCERPT_CHARS")
    screenshot_full_page: bool = Field(default=True, alias="SCREENSHOT_FULL_PAGE")
    screenshot_width: int = Field(default=1920, ge=320, alias="SCREENSHOT_WIDTH")
    screenshot_height: int = Field(default=1080, ge=240, alias="SCREENSHOT_HEIGHT")
    screenshot_dir: Path = Field(default=Path("screenshots"), alias="SCREENSHOT_DIR")
    # Per-stage limits in seconds; 0 disables the limit for that stage. Browser stages
    # may overrun theirs by up to NAVIGATION_TIMEOUT while the page is closed.
    # PERSIST_TIMEOUT is applied by the store to its lock and pool waits.
    fetch_timeout: float = Field(default=90.0, ge=0.0, alias="FETCH_TIMEOUT")
    capture_timeout: float = Field(default=90.0, ge=0.0, alias="CAPTURE_TIMEOUT")
    analyze_timeout: float = Field(default=120.0, ge=0.0, alias="ANALYZE_TIMEOUT")
    persist_timeout: float = Field(default=15.0, ge=0.0, alias="PERSIST_TIMEOUT")
    database_url: str = Field(default="sqlite:///siteinsight.db", alias="DATABASE_URL")
    history_limit: int = Field(default=10, ge=1, le=100, alias="HISTORY_LIMIT")
    export_dir: Path = Field(default=Path("exports"), alias="EXPORT_DIR")
    log_level: Literal["info", "debug", "warning"] = Field(default="info", alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def ensure_screenshot_dir(self) -> Path:
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        return self.screenshot_dir

    def ensure_export_dir(self) -> Path:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        return self.export_dir


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
