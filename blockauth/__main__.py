"""
BlockAuth command line

Usage:
  python -m blockauth serve --host 0.0.0.0 --port 5127
  python -m blockauth init-db
"""
import argparse

from . import config


def serve(host: str, port: int):
    import uvicorn

    uvicorn.run("blockauth.main:app", host=host, port=port, log_level=config.get_settings().log_level.lower())


def main(argv=None):
    parser = argparse.ArgumentParser(prog="blockauth")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=5127)

    sub.add_parser("init-db", help="Create database tables")

    args = parser.parse_args(argv)
    if args.command == "serve":
        serve(args.host, args.port)
    elif args.command == "init-db":
        from .db import init_db

        init_db()
        print(f"tables created in {config.get_settings().database_url}")


if __name__ == "__main__":
    main()
