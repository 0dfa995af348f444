#!/usr/bin/env python3
"""CLI entrypoint for editing statuses."""

from __future__ import annotations

import argparse

from loguru import logger

from status_editor.config import load_settings
from status_editor.db.base import SessionLocal
from status_editor.db.models import Status
from status_editor.errors import StatusEditError
from status_editor.services.edit_history import EditHistoryService
from status_editor.services.update_status import UpdateStatusService


def build_options(args: argparse.Namespace) -> dict:
    options = {
        "text": args.text,
        "spoiler_text": args.spoiler_text,
        "sensitive": args.sensitive,
        "language": args.language,
        "media_ids": args.media_ids,
    }
    if args.poll_options:
        options["poll"] = {
            "options": args.poll_options,
            "expires_in": args.poll_expires_in,
            "multiple": args.poll_multiple,
            "hide_totals": args.poll_hide_totals,
        }
    return options


def main() -> None:
    parser = argparse.ArgumentParser(description="Status editor CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    edit = subparsers.add_parser("edit", help="Edit an existing status")
    edit.add_argument("--status-id", type=int, required=True, help="Status to edit")
    edit.add_argument("--account-id", type=int, required=True, help="Account performing the edit")
    edit.add_argument("--text", type=str, default=None)
    edit.add_argument("--spoiler-text", type=str, default=None)
    edit.add_argument("--sensitive", action="store_true")
    edit.add_argument("--language", type=str, default=None, help="Locale tag, e.g. en or pt-BR")
    edit.add_argument(
        "--media-id",
        dest="media_ids",
        type=int,
        action="append",
        default=None,
        help="Media attachment id; repeat to attach several",
    )
    edit.add_argument(
        "--poll-option",
        dest="poll_options",
        type=str,
        action="append",
        default=None,
        help="Poll option label; repeat for each option",
    )
    edit.add_argument("--poll-expires-in", type=int, default=None, help="Seconds until the poll closes")
    edit.add_argument("--poll-multiple", action="store_true")
    edit.add_argument("--poll-hide-totals", action="store_true")

    args = parser.parse_args()

    settings = load_settings()
    session = SessionLocal()
    try:
        status = session.get(Status, args.status_id)
        if status is None:
            raise SystemExit(f"Status not found: {args.status_id}")

        try:
            status = UpdateStatusService(session, settings).call(status, args.account_id, build_options(args))
        except StatusEditError as e:
            logger.error("Edit rejected ({}): {}", e.code, e)
            raise SystemExit(1)

        logger.success("Status {} updated", status.id)
        logger.info("  edits in history: {}", EditHistoryService.count(session, status.id))
    finally:
        session.close()


if __name__ == "__main__":
    main()
