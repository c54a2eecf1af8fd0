"""Main application entry point."""

import logging

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from realty_contracts.config import settings  # noqa: E402
from realty_contracts.services.logging import setup_server_logging  # noqa: E402

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Realty contracts API server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    # Uvicorn keeps this configuration (log_config=None below)
    setup_server_logging(settings.log_file)

    logger.info(f"Starting Uvicorn server on {args.host}:{args.port}...")
    uvicorn.run(
        "realty_contracts.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
