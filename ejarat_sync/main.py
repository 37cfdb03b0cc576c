"""Process entry point: validate configuration and serve the API with uvicorn."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from ejarat_sync.config import ConfigurationError, get_settings, validate_settings

logger = logging.getLogger("ejarat_sync.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="ejarat-sync API server")
    parser.add_argument("--host", default=settings.host, help="Bind address for the API")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port for the HTTP API (default: {settings.port})",
    )
    return parser.parse_args(list(argv) if argv is not None else sys.argv[1:])


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = _parse_args(argv)

    try:
        validate_settings(settings)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1

    from ejarat_sync.app import create_app
    from ejarat_sync.dependencies import get_db_client
    import uvicorn

    app = create_app(settings)
    db = get_db_client()
    logger.info("Using %s store", type(db).__name__)
    logger.info("Starting API on http://%s:%s", args.host, args.port)

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
