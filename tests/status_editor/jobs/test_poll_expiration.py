from datetime import timedelta
from unittest.mock import patch

from sqlalchemy import select

from status_editor.db.base import utcnow
from status_editor.db.models import Notification, ScheduledJob
from status_editor.jobs.poll_expiration import QueuedPollExpirationNotifier, notify_poll_expiration
from status_editor.jobs.queue import POLL_EXPIRATION_NOTIFY_WORKER, JobQueue


def _notified(session, poll_id):
    return sorted(
        session.execute(
            select(Notification.account_id).where(Notification.activity_id == poll_id)
        ).scalars().all()
    )


def test_expired_poll_notifies_owner_and_voters_once(session, account, other_account, make_status, make_poll):
    status = make_status(account)
    poll = make_poll(
        status,
        votes=[(other_account, 0), (other_account, 1), (account, 1)],
        expires_at=utcnow() - timedelta(minutes=1),
        multiple=True,
    )

    notify_poll_expiration(session, poll.id)
    session.commit()
    notify_poll_expiration(session, poll.id)
    session.commit()

    assert _notified(session, poll.id) == sorted([account.id, other_account.id])


def test_poll_not_yet_expired_is_requeued_after_delay(monkeypatch, session, account, make_status, make_poll):
    monkeypatch.setenv("POLL_NOTIFICATION_DELAY_SECONDS", "300")
    status = make_status(account)
    expires_at = utcnow() + timedelta(hours=1)
    poll = make_poll(status, expires_at=expires_at)

    notify_poll_expiration(session, poll.id)
    session.commit()

    assert _notified(session, poll.id) == []
    jobs = JobQueue.find_jobs(session, POLL_EXPIRATION_NOTIFY_WORKER, status=ScheduledJob.STATUS_SCHEDULED)
    assert [(job.args, job.scheduled_at) for job in jobs] == [([poll.id], expires_at + timedelta(minutes=5))]


def test_missing_or_open_ended_poll_is_ignored(session, account, make_status, make_poll):
    status = make_status(account)
    poll = make_poll(status)

    notify_poll_expiration(session, poll.id)
    notify_poll_expiration(session, 9999)

    assert _notified(session, poll.id) == []
    assert JobQueue.find_jobs(session, POLL_EXPIRATION_NOTIFY_WORKER) == []


def test_queued_notifier_delegates_to_job_queue(session):
    notifier = QueuedPollExpirationNotifier(session)
    at = utcnow()

    with patch("status_editor.jobs.poll_expiration.JobQueue") as queue:
        notifier.schedule_at(5, at)
        notifier.cancel(5)

    queue.perform_at.assert_called_once_with(session, at, POLL_EXPIRATION_NOTIFY_WORKER, 5)
    queue.remove_from_scheduled.assert_called_once_with(session, POLL_EXPIRATION_NOTIFY_WORKER, 5)
