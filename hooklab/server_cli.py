"""CLI entry point for the hooklab API server."""

import argparse
import logging

from hooklab.config import get_settings


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="hooklab-server",
        description="hooklab API server: webhook capture, listing and handler generation",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    from hooklab.database import init_db

    init_db()

    import uvicorn

    uvicorn.run("hooklab.main:create_app", factory=True, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
