"""
CLI entrypoint for the FastAPI server.

Usage:
  portfolio-api --host 0.0.0.0 --port 8000 --db-path data/portfolio.db
"""

from __future__ import annotations

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the Portfolio Hub API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument("--db-path", help="SQLite database file (overrides PORTFOLIO_DB_PATH)")
    parser.add_argument("--storage-path", help="Upload directory (overrides PORTFOLIO_STORAGE_PATH)")
    args = parser.parse_args(argv)

    # Settings are read at import time, so the overrides go in before the app loads.
    if args.db_path:
        os.environ["PORTFOLIO_DB_PATH"] = args.db_path
    if args.storage_path:
        os.environ["PORTFOLIO_STORAGE_PATH"] = args.storage_path

    import uvicorn

    uvicorn.run("portfolio.api:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
