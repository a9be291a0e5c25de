from __future__ import annotations

import logging
import time

from dotenv import load_dotenv

from apps.api import create_app
from core.config import get_settings
from core.logging import configure_logging

load_dotenv()

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("main")

_boot_start_time = time.time()
app = create_app(settings=settings)
logger.info(
    "Pipeline scoring API ready in %.2fs (score store: %s)",
    time.time() - _boot_start_time,
    settings.score_store,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
