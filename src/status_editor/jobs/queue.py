"""Durable job queue backed by the scheduled_jobs table."""
from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from loguru import logger
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from status_editor.db.base import utcnow
from status_editor.db.models import ScheduledJob

# Worker names
LINK_CRAWL_WORKER = "LinkCrawlWorker"
DISTRIBUTION_WORKER = "DistributionWorker"
STATUS_UPDATE_DISTRIBUTION_WORKER = "StatusUpdateDistributionWorker"
POLL_EXPIRATION_NOTIFY_WORKER = "PollExpirationNotifyWorker"


def args_key(args: Iterable[Any]) -> str:
    """Canonical JSON for job arguments; equal argument lists give equal keys."""
    return json.dumps(list(args), sort_keys=True, separators=(",", ":"))


class JobQueue:
    """Enqueue, schedule and cancel background jobs.

    Nothing here commits; jobs become visible with the caller's transaction.
    """

    @staticmethod
    def perform_async(session: Session, worker: str, *args: Any) -> ScheduledJob:
        """Queue a job for immediate execution."""
        job = ScheduledJob(
            worker=worker,
            args=list(args),
            args_key=args_key(args),
            status=ScheduledJob.STATUS_PENDING,
        )
        session.add(job)
        session.flush()
        logger.debug(f"[JOB] Queued {worker}{list(args)} as job {job.id}")
        return job

    @staticmethod
    def perform_at(session: Session, at: datetime, worker: str, *args: Any) -> ScheduledJob:
        """Queue a job that becomes due at the given time."""
        job = ScheduledJob(
            worker=worker,
            args=list(args),
            args_key=args_key(args),
            status=ScheduledJob.STATUS_SCHEDULED,
            scheduled_at=at,
        )
        session.add(job)
        session.flush()
        logger.debug(f"[JOB] Scheduled {worker}{list(args)} at {at.isoformat()} as job {job.id}")
        return job

    @staticmethod
    def remove_from_scheduled(session: Session, worker: str, *args: Any) -> int:
        """Cancel scheduled jobs of a worker with exactly these arguments."""
        jobs = session.execute(
            select(ScheduledJob).where(
                ScheduledJob.worker == worker,
                ScheduledJob.status == ScheduledJob.STATUS_SCHEDULED,
                ScheduledJob.args_key == args_key(args),
            )
        ).scalars().all()

        now = utcnow()
        for job in jobs:
            job.status = ScheduledJob.STATUS_CANCELLED
            job.completed_at = now

        session.flush()
        if jobs:
            logger.info(f"[JOB] Cancelled {len(jobs)} scheduled {worker}{list(args)} job(s)")
        return len(jobs)

    @staticmethod
    def get_due_jobs(
        session: Session,
        workers: Optional[Iterable[str]] = None,
        limit: int = 10,
        now: Optional[datetime] = None,
        stale_after: Optional[timedelta] = None,
    ) -> List[ScheduledJob]:
        """Pending jobs, plus scheduled jobs whose time has come, oldest first.

        With stale_after, jobs left RUNNING longer than that (a worker died
        mid-job) are handed out again.
        """
        now = now or utcnow()
        due = [
            ScheduledJob.status == ScheduledJob.STATUS_PENDING,
            and_(
                ScheduledJob.status == ScheduledJob.STATUS_SCHEDULED,
                ScheduledJob.scheduled_at <= now,
            ),
        ]
        if stale_after is not None:
            due.append(
                and_(
                    ScheduledJob.status == ScheduledJob.STATUS_RUNNING,
                    ScheduledJob.started_at <= now - stale_after,
                )
            )

        query = select(ScheduledJob).where(or_(*due))
        if workers is not None:
            query = query.where(ScheduledJob.worker.in_(list(workers)))

        query = query.order_by(ScheduledJob.scheduled_at.asc(), ScheduledJob.id.asc()).limit(limit)
        return list(session.execute(query).scalars().all())

    @staticmethod
    def find_jobs(session: Session, worker: str, status: Optional[str] = None) -> List[ScheduledJob]:
        query = select(ScheduledJob).where(ScheduledJob.worker == worker)
        if status:
            query = query.where(ScheduledJob.status == status)
        return list(session.execute(query.order_by(ScheduledJob.id)).scalars().all())

    @staticmethod
    def update_job_status(
        session: Session,
        job_id: int,
        status: str,
        error_message: Optional[str] = None,
    ) -> bool:
        """Move a job to a new status and stamp its timing fields."""
        job = session.get(ScheduledJob, job_id)
        if not job:
            return False

        job.status = status

        if status == ScheduledJob.STATUS_RUNNING:
            job.started_at = utcnow()
        elif status in (ScheduledJob.STATUS_SUCCESS, ScheduledJob.STATUS_FAILED, ScheduledJob.STATUS_CANCELLED):
            job.completed_at = utcnow()

        if status == ScheduledJob.STATUS_FAILED:
            job.retry_count += 1

        if error_message:
            job.error_message = error_message[:1000]

        session.flush()
        return True
