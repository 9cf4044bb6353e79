#!/usr/bin/env python3
"""
manage.py - Project management entry point

Usage:
    python manage.py                          # start the web server (default)
    python manage.py web                      # start the web server
    python manage.py web --port 9000          # start on a specific port
    python manage.py web --retention 60       # keep finished jobs for 60s
    python manage.py init-db                  # create the SQLite schema
    python manage.py issue-key acme "Acme"    # issue a partner API key
    python manage.py revoke-key vak_...       # deactivate a partner API key
"""

import argparse
import asyncio
import logging
import os
import socket
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def setup_environment(
    retention_s: float | None = None,
    stage_timeout_s: float | None = None,
    rate_limit: bool = True,
) -> None:
    """Export CLI overrides before the app (and its config) is imported"""
    if retention_s is not None:
        os.environ["VISA_JOB_RETENTION_S"] = str(retention_s)
    if stage_timeout_s is not None:
        os.environ["VISA_STAGE_TIMEOUT_S"] = str(stage_timeout_s)
    if not rate_limit:
        os.environ["VISA_RATE_LIMIT"] = "0"


def is_port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((host, port)) == 0


def run_web_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
    log_level: str = "INFO",
):
    """Start the web server"""
    setup_logging(log_level)
    logger = logging.getLogger("manage")

    if is_port_in_use(host, port):
        logger.warning("Port %d is already in use, server may fail to start", port)

    import uvicorn
    from backend.visa_eval.web.main import app

    logger.info("Launching server at http://%s:%d (debug=%s)", host, port, debug)
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())


async def _init_db() -> None:
    from backend.visa_eval.db import DatabaseManager
    from backend.visa_eval.web.config import config

    db = DatabaseManager(config.db_path)
    await db.init()
    await db.close()
    logging.getLogger("manage").info("Database ready at %s", config.db_path)


async def _issue_key(partner_id: str, partner_name: str, rate_limit: int | None) -> None:
    from backend.visa_eval.db import DatabaseManager, PartnerKeyRepository
    from backend.visa_eval.web.config import config

    db = DatabaseManager(config.db_path)
    await db.init()
    try:
        keys = PartnerKeyRepository(db, default_rate_limit=config.partner_rate_limit)
        record = await keys.create_key(partner_id, partner_name, rate_limit)
    finally:
        await db.close()
    print(record.key)


async def _revoke_key(key: str, db_path=None) -> bool:
    from backend.visa_eval.db import DatabaseManager, PartnerKeyRepository
    from backend.visa_eval.web.config import config

    db = DatabaseManager(db_path or config.db_path)
    await db.init()
    try:
        revoked = await PartnerKeyRepository(db).deactivate(key)
    finally:
        await db.close()
    if revoked:
        logging.getLogger("manage").warning("Partner key revoked: %s...", key[:12])
    return revoked


def main():
    parser = argparse.ArgumentParser(
        description="Visa evaluation service - management entry point",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_web = subparsers.add_parser("web", help="Start the web server")
    parser_web.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser_web.add_argument("--port", type=int, default=8000, help="Bind port")
    parser_web.add_argument("--debug", action="store_true", help="Debug logging")
    parser_web.add_argument("--retention", type=float, default=None, help="Seconds to keep finished jobs")
    parser_web.add_argument("--stage-timeout", type=float, default=None, help="Per-stage timeout in seconds (0 disables)")
    parser_web.add_argument("--no-rate-limit", action="store_true", help="Disable request rate limiting")

    subparsers.add_parser("init-db", help="Create the database schema")

    parser_key = subparsers.add_parser("issue-key", help="Issue a partner API key")
    parser_key.add_argument("partner_id")
    parser_key.add_argument("partner_name")
    parser_key.add_argument("--rate-limit", type=int, default=None, help="Requests per day")

    parser_revoke = subparsers.add_parser("revoke-key", help="Deactivate a partner API key")
    parser_revoke.add_argument("key")

    args = parser.parse_args()

    if not args.command:
        run_web_server()
        return

    if args.command == "web":
        setup_environment(
            retention_s=args.retention,
            stage_timeout_s=args.stage_timeout,
            rate_limit=not args.no_rate_limit,
        )
        run_web_server(
            host=args.host,
            port=args.port,
            debug=args.debug,
            log_level="DEBUG" if args.debug else "INFO",
        )
    elif args.command == "init-db":
        setup_logging()
        asyncio.run(_init_db())
    elif args.command == "issue-key":
        setup_logging("WARNING")
        asyncio.run(_issue_key(args.partner_id, args.partner_name, args.rate_limit))
    elif args.command == "revoke-key":
        setup_logging("WARNING")
        if not asyncio.run(_revoke_key(args.key)):
            print(f"Unknown partner key: {args.key}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nStopped")
        sys.exit(0)
