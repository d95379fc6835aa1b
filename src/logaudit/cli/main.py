"""
Log auditor CLI.

Commands:
    logaudit run                 Audit the log every poll interval until interrupted
    logaudit run --once          Run a single audit cycle and exit

Flags override LOGAUDIT_* environment settings.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FETCH_FAILED = EXIT_ERROR
EXIT_INTEGRITY_FAILED = 2


def _settings_from_args(args):
    from logaudit.core.settings import AuditSettings, get_settings

    overrides = {
        "log_url": args.log_url,
        "connect_timeout": args.connect_timeout,
        "fetch_root_timeout": args.fetch_root_timeout,
        "poll_interval": args.poll_interval,
        "log_level": args.log_level,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    base = get_settings()
    if not overrides:
        return base
    return AuditSettings(**{**base.model_dump(), **overrides})


def cmd_run(args) -> int:
    """Start the auditor."""
    from logaudit.core.auditor import AuditLoop
    from logaudit.utils.logging import configure_logging

    try:
        settings = _settings_from_args(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(settings.log_level)
    auditor = AuditLoop.from_settings(settings)

    try:
        if args.once:
            result = auditor.check_latest()
            if getattr(args, "output", "text") == "json":
                print(json.dumps(result.to_dict(), indent=2))
            if result.integrity_failure:
                return EXIT_INTEGRITY_FAILED
            if not result.ok:
                return EXIT_FETCH_FAILED
            return EXIT_OK

        def _signal_handler(signum, frame):
            auditor.stop()

        signal.signal(signal.SIGTERM, _signal_handler)
        signal.signal(signal.SIGINT, _signal_handler)

        auditor.run()
        return EXIT_OK
    finally:
        auditor.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logaudit",
        description="Audit a remote append-only log for consistency.",
    )
    sub = parser.add_subparsers(dest="command")
    sub.required = True

    run = sub.add_parser("run", help="Audit the log periodically")
    run.add_argument("--log-url", help="Base URL of the log service")
    run.add_argument(
        "--connect-timeout",
        type=float,
        help="Seconds allowed for connecting to the log service",
    )
    run.add_argument(
        "--fetch-root-timeout",
        type=float,
        help="Seconds allowed for fetching the latest log root",
    )
    run.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between audit cycles",
    )
    run.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    run.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit (1: fetch failed, 2: integrity failure)",
    )
    run.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format for --once",
    )
    run.set_defaults(func=cmd_run)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
