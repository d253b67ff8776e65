"""Main entry point - runs the API server."""

import logging

import uvicorn

from paydail.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.debug)

    logger.info("Starting Paydail...")
    logger.info(f"Environment: {settings.environment}")
    if not settings.bitgo_webhook_secret:
        logger.warning("BITGO_WEBHOOK_SECRET not set - webhook deliveries will be rejected")

    uvicorn.run(
        "paydail.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
