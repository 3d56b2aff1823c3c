from __future__ import annotations

import logging

import uvicorn

from services.orchestrator.app import app, engine, settings
from services.orchestrator.telemetry import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(settings.log_level)
    logger.info("will listen on :%d%s", settings.port, settings.receive_path)
    try:
        uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
    finally:
        engine.shutdown(wait=False)


if __name__ == "__main__":
    main()
