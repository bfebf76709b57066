from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from notarizer.domain.auth import Credentials
from notarizer.domain.errors import DomainValidationError
from notarizer.domain.ids import new_run_id
from notarizer.domain.models import EXIT_USAGE, ArtifactRequest, RunOutcome
from notarizer.logging_setup import configure_logging
from notarizer.services.bootstrap import SUPPORTED_BACKENDS, RuntimeOptions, build_runtime_container
from notarizer.workers.reporter import FanoutReporter, LoggingReporter, StreamReporter, status_prefixes
from notarizer.workers.runner import run_until_complete
from notarizer.workers.settings import PollerSettings, poller_settings_from_env

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    env_settings = poller_settings_from_env()
    parser = argparse.ArgumentParser(
        prog="notarizer",
        description="Submit artifacts for notarization and wait for the verdict.",
    )
    parser.add_argument("files", nargs="*", help="Artifacts to notarize (zip, dmg or pkg)")
    parser.add_argument("--bundle-id", default=os.getenv("NOTARIZE_BUNDLE_ID"))
    parser.add_argument(
        "--staple",
        action="store_true",
        help="Staple the ticket to each accepted artifact",
    )
    parser.add_argument(
        "--staple-path",
        action="append",
        default=[],
        metavar="PATH",
        help="Staple the ticket to this accepted artifact only (repeatable)",
    )
    parser.add_argument(
        "--bundle-id-for",
        action="append",
        default=[],
        metavar="PATH=ID",
        help="Bundle id for one artifact, overriding --bundle-id (repeatable)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=env_settings.slow_interval_seconds,
        help="Seconds between status polls while queued or in progress",
    )
    parser.add_argument(
        "--fetch-log",
        action=argparse.BooleanOptionalAction,
        default=env_settings.fetch_log,
        help="Also poll the submission log before deciding the verdict",
    )
    parser.add_argument(
        "--backend",
        default=os.getenv("NOTARIZE_BACKEND", "notarytool"),
        choices=SUPPORTED_BACKENDS,
    )
    parser.add_argument("--username", default=os.getenv("AC_USERNAME", ""))
    parser.add_argument("--password", default=os.getenv("AC_PASSWORD", ""))
    parser.add_argument("--provider", default=os.getenv("AC_PROVIDER", ""))
    parser.add_argument("--api-key", default=os.getenv("AC_APIKEY", ""))
    parser.add_argument("--api-key-path", default=os.getenv("AC_APIKEY_PATH", ""))
    parser.add_argument("--api-issuer", default=os.getenv("AC_APIISSUER", ""))
    parser.add_argument("--log-level", default=os.getenv("NOTARIZE_LOG_LEVEL", "WARNING"))
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format for machine readability",
    )
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate arguments and credentials, then exit",
    )
    return parser.parse_args(argv)


def validate_log_level(level: str) -> str:
    normalized = level.strip().upper()
    if normalized in LOG_LEVELS:
        return normalized

    supported = ", ".join(LOG_LEVELS)
    raise ValueError(f"Unsupported log level '{level}'. Supported levels: {supported}")


def validate_poll_interval(seconds: float) -> float:
    if seconds > 0:
        return seconds
    raise ValueError(f"--poll-interval must be a positive number of seconds, got {seconds:g}")


def build_requests(args: argparse.Namespace) -> list[ArtifactRequest]:
    bundle_ids: dict[str, str] = {}
    for item in args.bundle_id_for:
        path, sep, bundle_id = item.rpartition("=")
        if not sep or not path or not bundle_id:
            raise ValueError(f"--bundle-id-for expects PATH=BUNDLE_ID, got '{item}'")
        bundle_ids[path] = bundle_id

    staple_paths = set(args.staple_path)
    unknown = (set(bundle_ids) | staple_paths) - set(args.files)
    if unknown:
        raise ValueError(f"per-file options name files that are not being notarized: {', '.join(sorted(unknown))}")

    return [
        ArtifactRequest(
            path=path,
            bundle_id=bundle_ids.get(path, args.bundle_id),
            staple=args.staple or path in staple_paths,
        )
        for path in args.files
    ]


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not args.files and not args.dry_run_startup:
        sys.stderr.write("ERROR: at least one file to notarize is required\n")
        return EXIT_USAGE

    try:
        log_level = validate_log_level(args.log_level)
        poll_interval = validate_poll_interval(args.poll_interval)
        requests = build_requests(args)
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return EXIT_USAGE

    configure_logging(level=log_level, json_format=args.log_json)
    run_id = new_run_id()
    logger = logging.getLogger("notarizer")

    options = RuntimeOptions(
        backend=args.backend,
        credentials=Credentials(
            username=args.username,
            password=args.password,
            provider=args.provider,
            api_key=args.api_key,
            api_key_path=args.api_key_path,
            api_issuer=args.api_issuer,
        ),
        settings=PollerSettings(
            slow_interval_seconds=poll_interval,
            fetch_log=args.fetch_log,
        ),
    )
    reporter = FanoutReporter(
        reporters=(
            StreamReporter(stream=sys.stdout, prefixes=status_prefixes(requests)),
            LoggingReporter(),
        )
    )

    try:
        container = build_runtime_container(options, run_id=run_id, reporter=reporter)
    except (DomainValidationError, ValueError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return EXIT_USAGE

    if args.dry_run_startup:
        logger.info("dry-run startup complete", extra={"run_id": run_id})
        return 0

    sys.stdout.write("==> Notarizing...\n")
    if len(requests) > 1:
        sys.stdout.write("    Files will be notarized concurrently to optimize queue wait\n")
    for request in requests:
        sys.stdout.write(f"    Path: {request.path}\n")
    sys.stdout.flush()

    outcome = asyncio.run(
        run_until_complete(
            coordinator=container.coordinator,
            requests=requests,
            logger=logger,
            handle_signals=True,
        )
    )
    _print_summary(outcome)
    return outcome.exit_code


def _print_summary(outcome: RunOutcome) -> None:
    error = outcome.error
    if error is not None:
        sys.stdout.write(f"\nError notarizing: {error.message}\n")
        for exc in error.exceptions:
            sys.stdout.write(f"  * {exc}\n")
        if outcome.accepted:
            sys.stdout.write("Notarized files:\n")
    else:
        sys.stdout.write("\nNotarization complete! Notarized files:\n")
    for accepted in outcome.accepted:
        sys.stdout.write(f"  - {accepted.request}\n")
    sys.stdout.flush()


if __name__ == "__main__":
    raise SystemExit(run())
