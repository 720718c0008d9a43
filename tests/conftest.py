import pytest

from siteinsight.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        GEMINI_API_KEY="dummy",
        DATABASE_URL="sqlite://",
        SCREENSHOT_DIR=tmp_path / "screenshots",
        EXPORT_DIR=tmp_path / "exports",
        FETCH_TIMEOUT=5,
        CAPTURE_TIMEOUT=5,
        ANALYZE_TIMEOUT=5,
        PERSIST_TIMEOUT=5,
    )
