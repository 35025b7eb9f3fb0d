"""Entry point for the PrepMaster backend jobs."""

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

import firebase_admin  # type: ignore[import-untyped]
from firebase_admin import credentials, firestore  # type: ignore[import-untyped]

from .admin import ensure_it_admin, seed_default_users
from .config import Config, load_config
from .dates import local_today
from .digest import send_daily_digest
from .expander import generate_upcoming_schedules
from .forecast import compute_prep_forecasts
from .push import ExpoPushSender
from .store import FirestoreStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def init_firebase(config: Config) -> firestore.Client:
    """Initialize Firebase Admin SDK and return Firestore client."""
    if config.firebase_credentials_path:
        cred = credentials.Certificate(str(config.firebase_credentials_path))
    else:
        cred = credentials.ApplicationDefault()
    options = {"projectId": config.project_id} if config.project_id else None
    firebase_admin.initialize_app(cred, options)
    return firestore.client()


def _bootstrap(args: argparse.Namespace) -> tuple[Config, FirestoreStore]:
    setup_logging(args.verbose, args.log_file)

    config_path: Path | None = args.config
    if config_path is not None and not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    config = load_config(config_path)
    db = init_firebase(config)
    logger.info("Firebase initialized (timezone %s)", config.timezone)
    return config, FirestoreStore(db)


def _sender(config: Config) -> ExpoPushSender:
    return ExpoPushSender(
        url=config.expo_push_url,
        chunk_size=config.push_chunk_size,
        timeout=config.push_timeout_seconds,
    )


def cmd_generate_schedules(args: argparse.Namespace) -> None:
    """Materialize schedules from recurring rules (nightly, 03:00)."""
    config, store = _bootstrap(args)
    now = datetime.now(UTC)
    generate_upcoming_schedules(
        store,
        today=local_today(config.tz, now),
        now=now,
        max_ahead=config.max_generate_days_ahead,
    )


def cmd_compute_forecasts(args: argparse.Namespace) -> None:
    """Recompute prep forecasts (nightly, 02:30)."""
    config, store = _bootstrap(args)
    compute_prep_forecasts(
        store,
        datetime.now(UTC),
        config.tz,
        lookback_days=config.forecast_lookback_days,
        horizon_days=config.forecast_horizon_days,
    )


def cmd_daily_digest(args: argparse.Namespace) -> None:
    """Push yesterday's prep summary to managers (daily, 06:00)."""
    config, store = _bootstrap(args)
    result = send_daily_digest(store, _sender(config), local_today(config.tz))
    logger.info("Daily digest: %s", result)


def cmd_ensure_admin(args: argparse.Namespace) -> None:
    _, store = _bootstrap(args)
    result = ensure_it_admin(store, datetime.now(UTC))
    logger.info("IT admin account: %s", result)


def cmd_seed_users(args: argparse.Namespace) -> None:
    _, store = _bootstrap(args)
    added = seed_default_users(store, datetime.now(UTC))
    logger.info("Seeded %d users", added)


def cmd_watch_schedules(args: argparse.Namespace) -> None:
    from .watcher import run_schedule_watch

    config, store = _bootstrap(args)
    run_schedule_watch(store, _sender(config), poll_seconds=config.watch_poll_seconds)


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    from .api import create_app

    config, store = _bootstrap(args)
    app = create_app(store, _sender(config), config)
    uvicorn.run(app, host=config.host, port=args.port or config.port)


def main() -> None:
    """Main entry point."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to JSON configuration file (defaults apply when omitted)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    common.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )

    parser = argparse.ArgumentParser(
        description="PrepMaster backend jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Crontab (times in the configured timezone):
  30 2 * * *   prepmaster compute-forecasts
  0 3 * * *    prepmaster generate-schedules
  0 6 * * *    prepmaster daily-digest
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = [
        ("generate-schedules", cmd_generate_schedules, "Create schedules from recurring rules"),
        ("compute-forecasts", cmd_compute_forecasts, "Recompute prep forecasts"),
        ("daily-digest", cmd_daily_digest, "Push yesterday's digest to managers"),
        ("ensure-admin", cmd_ensure_admin, "Make sure the IT admin account (PIN 0000) exists"),
        ("seed-users", cmd_seed_users, "Add default users to an empty users collection"),
        ("watch-schedules", cmd_watch_schedules, "Notify on schedule completion via a snapshot listener"),
    ]
    for name, func, help_text in commands:
        sub = subparsers.add_parser(name, parents=[common], help=help_text)
        sub.set_defaults(func=func)

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Run the HTTP entry points")
    serve_parser.add_argument("--port", type=int, default=None, help="Override the configured port")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
