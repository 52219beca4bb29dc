"""
PULSE SCANNER: Main Entry Point
Serves the HTTP API; the app lifespan starts the refresh and prediction loops.
"""
import uvicorn
from pulse_scanner.config.settings import get_settings
from pulse_scanner.utils.logger import setup_logging, get_logger

logger = get_logger("main")


def run_api():
    settings = get_settings()
    setup_logging()
    logger.info("starting_pulse_scanner", version=settings.version, port=settings.port)
    uvicorn.run(
        "pulse_scanner.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run_api()
