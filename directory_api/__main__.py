import argparse
import os

import uvicorn

from . import config
from .main import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the establishment directory API")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", 8000)),
        help="Port to listen on (default: $PORT or 8000)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help=f"SQLite database file (default: {config.DB_PATH})",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if args.db_path:
        # uvicorn --reload starts a fresh interpreter, so pass the path through the environment too
        os.environ["DIRECTORY_DB_PATH"] = args.db_path
        config.DB_PATH = args.db_path
    configure_logging(args.verbose)
    uvicorn.run(
        "directory_api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.verbose else "info",
    )


if __name__ == "__main__":
    main()
