"""
CLI entrypoint for the FastAPI server.

Usage:
  sorteos-api --host 0.0.0.0 --port 8000
  sorteos-api --memory          # in-process store, no database
"""

from __future__ import annotations

import argparse
import os


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Sorteos API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument("--memory", action="store_true", help="Use the in-memory store instead of Postgres")
    args = parser.parse_args()

    if args.memory:
        os.environ["SORTEOS_STORE"] = "memory"

    import uvicorn

    uvicorn.run("sorteos.api:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
