from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from mixtape.app import (
    build_services,
    cleanup_old_data,
    create_daily_rounds,
    ensure_group_playlists,
    merge_users,
    process_completed_rounds,
    refresh_expired_tokens,
    update_group_playlists,
)
from mixtape.config import configure_logging, get_schedule_config
from mixtape.domain.model import Platform
from mixtape.scheduler import run_scheduler

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the mixtape group playlist jobs")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("scheduler", help="Run all timed jobs until interrupted")
    subparsers.add_parser("create-rounds", help="Open today's round for every group")
    subparsers.add_parser("process-rounds", help="Publish and conclude yesterday's rounds")
    subparsers.add_parser("refresh-tokens", help="Refresh platform tokens about to expire")
    subparsers.add_parser("cleanup", help="Delete rounds older than the retention window")

    ensure = subparsers.add_parser(
        "ensure-playlists", help="Create missing group playlists on every platform in use"
    )
    ensure.add_argument("--group-id", type=str, required=True, help="Group to provision")
    ensure.add_argument(
        "--user-id",
        type=str,
        help="Member preferred as owner of newly created playlists",
    )

    update = subparsers.add_parser(
        "update-playlists", help="Push one round's submissions to the group playlists"
    )
    update.add_argument("--round-id", type=str, required=True, help="Round to publish")

    merge = subparsers.add_parser("merge-users", help="Fold one user into another")
    merge.add_argument("--primary", type=str, required=True, help="User id that survives")
    merge.add_argument("--secondary", type=str, required=True, help="User id that is removed")
    merge.add_argument(
        "--platform",
        type=str,
        required=True,
        choices=[platform.value for platform in Platform],
        help="Platform whose account link triggered the merge",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _parse_ids(args: argparse.Namespace) -> dict[str, UUID | None]:
    ids: dict[str, UUID | None] = {}
    for name in ("group_id", "user_id", "round_id", "primary", "secondary"):
        raw = getattr(args, name, None)
        ids[name] = _parse_uuid(raw) if raw is not None else None
    if args.command == "merge-users" and ids["primary"] == ids["secondary"]:
        raise ValueError("--primary and --secondary must differ")
    return ids


def _run_command(args: argparse.Namespace, ids: dict[str, UUID | None]) -> None:
    command = args.command
    if command == "scheduler":
        run_scheduler(build_services(), get_schedule_config())
    elif command == "create-rounds":
        result = create_daily_rounds()
        log.info("Rounds created: %s, skipped: %s", len(result.created), result.skipped)
    elif command == "process-rounds":
        result = process_completed_rounds()
        log.info("Rounds processed: %s", len(result.statuses))
    elif command == "refresh-tokens":
        refresh_expired_tokens()
    elif command == "cleanup":
        result = cleanup_old_data()
        log.info(
            "Cleanup removed %s rounds and %s submissions",
            result.rounds_deleted,
            result.submissions_deleted,
        )
    elif command == "ensure-playlists":
        group_id = ids["group_id"]
        assert group_id is not None
        ensure_group_playlists(group_id, requesting_user_id=ids["user_id"])
    elif command == "update-playlists":
        round_id = ids["round_id"]
        assert round_id is not None
        report = update_group_playlists(round_id)
        if report.failed_platforms:
            raise RuntimeError(
                f"Playlist update failed on: {', '.join(report.failed_platforms)}"
            )
    elif command == "merge-users":
        primary, secondary = ids["primary"], ids["secondary"]
        assert primary is not None
        assert secondary is not None
        user = merge_users(primary, secondary, Platform(args.platform))
        log.info("Merged %s into %s", secondary, user.id)
    else:
        raise ValueError(f"Unsupported command: {command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        ids = _parse_ids(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run_command(parsed_args, ids)
    except Exception:
        log.exception("Fatal error running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
