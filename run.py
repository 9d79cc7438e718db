"""
Run script for starting the Retell voice bridge.

This script reads the bridge configuration, applies command line overrides and
starts the FastAPI server with uvicorn.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL] [--status]
"""

import argparse
import json
import os
import sys

import uvicorn

from retell_bridge.config.logging_config import configure_logging
from retell_bridge.config.settings import load_config

# Configure logging
logger = configure_logging()


def parse_args(config):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Retell voice bridge"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.websocket.port,
        help=f"Port to run the server on (default: {config.websocket.port} or RETELL_WS_PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=config.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print the resolved configuration and exit",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    config = load_config()
    args = parse_args(config)

    if args.status:
        print(json.dumps(config.model_dump(mode="json", exclude={"gateway": {"token", "password"}}), indent=2))
        return

    if not config.enabled:
        logger.error("Retell bridge is disabled (RETELL_ENABLED=false)")
        sys.exit(1)

    # retell_bridge.main configures logging again when uvicorn imports it
    os.environ["LOG_LEVEL"] = args.log_level
    configure_logging(args.log_level)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Agent gateway: {config.gateway.url}")

    uvicorn.run(
        "retell_bridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # We have our own logging
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
