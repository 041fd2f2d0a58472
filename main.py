"""
Portal data gateway entry point.
Serves weather, football and exchange rate data with caching and stale fallback.
"""

import sys

import uvicorn
from loguru import logger

from gateway.api import create_app
from gateway.settings import global_settings


def main() -> None:
    """Configure logging and run the API server."""
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    logger.info(
        f"Starting gateway API on {global_settings.api_host}:{global_settings.api_port}"
    )
    uvicorn.run(
        create_app(),
        host=global_settings.api_host,
        port=global_settings.api_port,
        log_level=global_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
