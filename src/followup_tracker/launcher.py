"""
Follow-up Tracker command line launcher.

Subcommands:
- serve: run the HTTP API with uvicorn
- init-db: apply the Alembic migrations up to head
- next-number: print the display number the next document would get
"""

import argparse
import socket
import sys
import logging
from pathlib import Path
from typing import Optional, Sequence

import uvicorn
from alembic import command
from alembic.config import Config

from .config import get_config
from .core.exceptions import StoreError
from .utils.logging_config import initialize_logging

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class PortManager:
    """Manages port detection and allocation."""

    @staticmethod
    def find_free_port(start_port: int = 8000, host: str = "127.0.0.1", max_attempts: int = 10) -> Optional[int]:
        """Find a free port starting from start_port."""
        for port in range(start_port, start_port + max_attempts):
            if PortManager.is_port_free(port, host):
                return port
        return None

    @staticmethod
    def is_port_free(port: int, host: str = "127.0.0.1") -> bool:
        """Check if a port is available."""
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.bind((host, port))
                return True
        except OSError:
            return False


def build_alembic_config(database_url: str, project_root: Path = PROJECT_ROOT) -> Config:
    """Alembic configuration pointing at the project's migration scripts."""
    ini_file = project_root / "alembic.ini"
    alembic_cfg = Config(str(ini_file)) if ini_file.exists() else Config()
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    # ConfigParser interpolation
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return alembic_cfg


def init_database(database_url: Optional[str] = None) -> None:
    """Upgrade the database schema to the latest revision."""
    from .db.database import resolve_database_url

    url = database_url or resolve_database_url()
    script_dir = PROJECT_ROOT / "alembic"
    if not script_dir.exists():
        raise FileNotFoundError(f"Migration scripts not found at {script_dir}")

    command.upgrade(build_alembic_config(url), "head")
    logging.getLogger("followup.main").info(f"Database upgraded to head: {url}")


def cmd_serve(args: argparse.Namespace) -> int:
    config = get_config()
    host = args.host or config.server.host

    if args.port:
        port = args.port
    else:
        port = PortManager.find_free_port(config.server.port, host)
        if port is None:
            print(f"[ERROR] No available ports found from {config.server.port}", file=sys.stderr)
            return 1

    print(f"Follow-up Tracker API at http://{host}:{port} (docs at /docs)")
    uvicorn.run(
        "followup_tracker.main:app",
        host=host,
        port=port,
        reload=args.reload or config.server.auto_reload,
        log_level="debug" if config.server.debug else "info",
        access_log=False,
    )
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    try:
        init_database(args.database_url)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    print("Database is up to date.")
    return 0


def cmd_next_number(args: argparse.Namespace) -> int:
    from .db.database import SessionLocal
    from .repositories.sqlalchemy_impl import SQLAlchemyNumberingService

    session = SessionLocal()
    try:
        print(SQLAlchemyNumberingService(session).next_display_number())
        return 0
    except StoreError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    finally:
        session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="followup-tracker", description="Purchase order follow-up tracker"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default from config)")
    serve.add_argument("--port", type=int, help="Port (default: first free from config port)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(handler=cmd_serve)

    init_db = subparsers.add_parser("init-db", help="Apply database migrations")
    init_db.add_argument("--database-url", help="Database URL (default from environment/config)")
    init_db.set_defaults(handler=cmd_init_db)

    next_number = subparsers.add_parser("next-number", help="Print the next document number")
    next_number.set_defaults(handler=cmd_next_number)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the command line launcher."""
    args = build_parser().parse_args(argv)
    initialize_logging(debug=args.debug or get_config().server.debug)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
