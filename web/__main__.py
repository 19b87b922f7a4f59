"""
Standalone server: python -m web

Reads host, port and log level from the environment (see relay.config) and
serves web.app:app with uvicorn. A missing GEMINI_API_KEY does not stop the
server; relay calls answer 500 until it is set.
"""

import logging

import uvicorn

from relay.config import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    logging.getLogger(__name__).info(
        "Relay server running on http://%s:%d/api/gemini-move", settings.host, settings.port
    )
    uvicorn.run(
        "web.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
