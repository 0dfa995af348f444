from __future__ import annotations

from datetime import datetime
from typing import Protocol

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from status_editor.config import load_settings
from status_editor.db.models import Notification, Poll, PollVote
from status_editor.jobs.queue import POLL_EXPIRATION_NOTIFY_WORKER, JobQueue


class PollExpirationNotifier(Protocol):
    def schedule_at(self, poll_id: int, at: datetime) -> None:
        """Arrange for voters to be notified about the poll at the given time."""
        ...

    def cancel(self, poll_id: int) -> None:
        """Drop any notification previously scheduled for the poll."""
        ...


class QueuedPollExpirationNotifier:
    """PollExpirationNotifier that stores its work in the job queue."""

    def __init__(self, session: Session):
        self.session = session

    def schedule_at(self, poll_id: int, at: datetime) -> None:
        JobQueue.perform_at(self.session, at, POLL_EXPIRATION_NOTIFY_WORKER, poll_id)
        logger.info(f"[POLL] Expiration notification for poll {poll_id} scheduled at {at.isoformat()}")

    def cancel(self, poll_id: int) -> None:
        JobQueue.remove_from_scheduled(self.session, POLL_EXPIRATION_NOTIFY_WORKER, poll_id)


def notify_poll_expiration(session: Session, poll_id: int) -> None:
    """
    Job handler: tell the poll's author and voters that it has closed.

    Runs at least once per schedule, so existing notifications are skipped.
    A job that fires before the poll expires is pushed back to the expiry time
    plus the notification delay.
    """
    poll = session.get(Poll, poll_id)
    if poll is None or poll.expires_at is None:
        return

    if not poll.expired:
        at = poll.expires_at + load_settings().poll_notification_delay
        logger.info(f"[POLL] Poll {poll_id} not expired yet, requeueing for {at.isoformat()}")
        JobQueue.perform_at(session, at, POLL_EXPIRATION_NOTIFY_WORKER, poll_id)
        return

    voter_ids = session.execute(
        select(PollVote.account_id).where(PollVote.poll_id == poll_id).distinct()
    ).scalars().all()

    recipients = [poll.account_id] + [account_id for account_id in voter_ids if account_id != poll.account_id]

    already_notified = set(
        session.execute(
            select(Notification.account_id).where(
                Notification.type == Notification.TYPE_POLL,
                Notification.activity_id == poll_id,
            )
        ).scalars().all()
    )

    created = 0
    for account_id in recipients:
        if account_id in already_notified:
            continue
        session.add(
            Notification(
                account_id=account_id,
                from_account_id=poll.account_id,
                type=Notification.TYPE_POLL,
                activity_id=poll_id,
            )
        )
        created += 1

    session.flush()
    logger.info(f"[POLL] Poll {poll_id} expired, notified {created} account(s)")
