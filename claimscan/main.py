"""Run the claim document OCR API under uvicorn."""

import argparse
from pathlib import Path

import uvicorn

from claimscan.api.app import app
from claimscan.utils.config import load_config
from claimscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Start the API server with host and port taken from configuration.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(description="Claim Document OCR API server")
    parser.add_argument("--config", type=Path, help="Path to a YAML config file")
    parser.add_argument("--host", help="Override the configured bind address")
    parser.add_argument("--port", type=int, help="Override the configured port")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    host = args.host or config.api.host
    port = args.port or config.api.port
    logger.info("Starting API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
