"""Service for creating, reshaping and removing the poll attached to a status."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy import delete, exists, select
from sqlalchemy.orm import Session

from status_editor.config import Settings
from status_editor.db.base import utcnow
from status_editor.db.models import Poll, PollVote, Status
from status_editor.errors import ValidationError
from status_editor.schemas import PollOptions


@dataclass(frozen=True)
class PollChange:
    """Outcome of reconciling the poll of a status."""

    changed: bool
    previous_expires_at: Optional[datetime]


class PollService:
    """
    Keeps the poll attached to a status in line with the requested shape.

    Transitions:
    - no poll -> poll: create a poll with zero votes
    - poll -> poll: apply new settings; different options discard every vote
    - poll -> no poll: destroy the poll and its votes
    """

    @staticmethod
    def validate_poll(poll_options: PollOptions, settings: Settings) -> None:
        options = poll_options.options

        if len(options) < 2:
            raise ValidationError("poll.too_few_options")
        if len(options) > settings.max_poll_options:
            raise ValidationError("poll.too_many_options")
        if any(len(option) > settings.max_poll_option_chars for option in options):
            raise ValidationError("poll.over_character_limit")
        if len(set(option.strip() for option in options)) != len(options):
            raise ValidationError("poll.duplicate_options")

        if poll_options.expires_in is not None:
            if poll_options.expires_in < settings.min_poll_expiration:
                raise ValidationError("poll.duration_too_short")
            if poll_options.expires_in > settings.max_poll_expiration:
                raise ValidationError("poll.duration_too_long")

    @staticmethod
    def has_votes(session: Session, poll: Poll) -> bool:
        if poll.id is None:
            return False
        return bool(session.execute(select(exists().where(PollVote.poll_id == poll.id))).scalar())

    @staticmethod
    def update_poll(
        session: Session,
        status: Status,
        account_id: int,
        poll_options: Optional[PollOptions],
        settings: Settings,
    ) -> PollChange:
        previous_poll = status.poll
        previous_expires_at = previous_poll.expires_at if previous_poll else None
        changed = False

        if poll_options is not None:
            PollService.validate_poll(poll_options, settings)

            poll = previous_poll
            is_new = poll is None
            if is_new:
                poll = Poll(
                    account_id=account_id,
                    status_id=status.id,
                    options=[],
                    cached_tallies=[],
                    votes_count=0,
                )
                session.add(poll)

            requested = list(poll_options.options)
            shape_changed = requested != list(poll.options or [])

            if shape_changed:
                if not is_new:
                    # Votes were cast against options that no longer exist
                    result = session.execute(delete(PollVote).where(PollVote.poll_id == poll.id))
                    session.expire(poll, ["votes"])
                    logger.info(f"[POLL] Options of poll {poll.id} changed, discarded {result.rowcount} votes")
                changed = not is_new or settings.poll_creation_is_change

            poll.options = requested
            if shape_changed:
                poll.reset_votes()
            poll.hide_totals = poll_options.hide_totals or False
            poll.multiple = poll_options.multiple or False
            if poll_options.expires_in:
                poll.expires_at = utcnow() + timedelta(seconds=poll_options.expires_in)
            else:
                poll.expires_at = None

            session.flush()
            status.poll = poll

            if is_new:
                logger.info(f"[POLL] Created poll {poll.id} for status {status.id}")

        elif previous_poll is not None:
            logger.info(f"[POLL] Removing poll {previous_poll.id} from status {status.id}")
            status.poll = None
            session.delete(previous_poll)
            changed = True

        session.flush()
        return PollChange(changed=changed, previous_expires_at=previous_expires_at)
