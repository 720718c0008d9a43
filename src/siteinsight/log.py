from __future__ import annotations

import logging

from siteinsight.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Attach a single stream handler to the package logger."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root = logging.getLogger("siteinsight")
    root.setLevel(level)
    if not any(getattr(handler, "_siteinsight", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._siteinsight = True  # type: ignore[attr-defined]
        root.addHandler(handler)
