from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from siteinsight import __version__
from siteinsight.app.api import router as analysis_router
from siteinsight.app.dependencies import shutdown_service
from siteinsight.config import get_settings
from siteinsight.log import configure_logging


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await shutdown_service()


def create_app() -> FastAPI:
    configure_logging(get_settings())
    app = FastAPI(title="SiteInsight", version=__version__, lifespan=_lifespan)
    app.include_router(analysis_router)
    return app


app = create_app()
