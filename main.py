"""Main entry point for the Lead Discovery API."""

import os
import uvicorn

from lead_discovery.core.config import settings
from lead_discovery.core.logging import logger


def main():
    """Run the Lead Discovery API server."""
    logger.info("Starting Lead Discovery API server")

    # Dev mode: enable auto-reload (set DEV_MODE=1 or UVICORN_RELOAD=1)
    dev_mode = os.environ.get("DEV_MODE", "0") == "1" or os.environ.get("UVICORN_RELOAD", "0") == "1"

    if dev_mode:
        logger.info("Running in DEV MODE with auto-reload enabled")
        uvicorn.run(
            "lead_discovery.api.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["src"],
            reload_excludes=[
                "*.db",
                "*.log",
                "__pycache__",
                "cache/*",
                "storage/*",
                "logs/*",
            ],
            log_level=settings.LOG_LEVEL.lower(),
        )
    else:
        # One worker: the browser pool and caches live in-process
        logger.info("Running in PRODUCTION MODE")
        uvicorn.run(
            "lead_discovery.api.main:app",
            host="0.0.0.0",
            port=8000,
            reload=False,
            log_level=settings.LOG_LEVEL.lower(),
        )


if __name__ == "__main__":
    main()
