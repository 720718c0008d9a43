from __future__ import annotations

from functools import lru_cache

from fastapi import Header

from siteinsight.app.service import AnalyzerService
from siteinsight.config import get_settings


@lru_cache(maxsize=1)
def get_service() -> AnalyzerService:
    settings = get_settings()
    return AnalyzerService(settings)


def get_user_id(x_user_id: str = Header(default="anonymous", max_length=255)) -> str:
    """Identity comes from the upstream auth proxy; only the id is needed here."""
    return x_user_id.strip() or "anonymous"


async def shutdown_service() -> None:
    if get_service.cache_info().currsize:
        await get_service().shutdown()
