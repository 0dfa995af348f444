"""Job runner for executing queued background jobs."""
from __future__ import annotations

import argparse
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

# Load env immediately to ensure DATABASE_URL is set for DB base
load_dotenv()

from status_editor.config import load_settings
from status_editor.db.base import SessionLocal
from status_editor.db.models import ScheduledJob
from status_editor.jobs.poll_expiration import notify_poll_expiration
from status_editor.jobs.queue import POLL_EXPIRATION_NOTIFY_WORKER, JobQueue

JobHandler = Callable[..., None]

DEFAULT_HANDLERS: Dict[str, JobHandler] = {
    POLL_EXPIRATION_NOTIFY_WORKER: notify_poll_expiration,
}


class JobRunner:
    """
    Executes due jobs for the workers it has handlers for.

    Jobs for other workers (link crawling, distribution, federation) stay in
    the queue for the processes that consume them.
    """

    def __init__(
        self,
        handlers: Optional[Dict[str, JobHandler]] = None,
        session_factory: sessionmaker = SessionLocal,
        stale_after: Optional[timedelta] = None,
    ):
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.session_factory = session_factory
        self.stale_after = stale_after if stale_after is not None else load_settings().job_stale_after

    def execute_job(self, job_id: int) -> Dict[str, Any]:
        """Execute a single job."""
        session: Session = self.session_factory()
        try:
            job = session.get(ScheduledJob, job_id)
            if not job:
                logger.error(f"[JOB] Job {job_id} not found")
                return {"status": "error", "message": "Job not found"}

            handler = self.handlers.get(job.worker)
            if handler is None:
                msg = f"No handler registered for {job.worker}"
                logger.error(f"[JOB] {msg}")
                return {"status": "error", "message": msg}

            worker, args = job.worker, list(job.args or [])

            if job.status == ScheduledJob.STATUS_RUNNING:
                logger.warning(f"[JOB] Job {job_id} was left RUNNING since {job.started_at}, running it again")

            logger.info(f"[JOB] Starting job {job_id} {worker}{args}")
            JobQueue.update_job_status(session, job_id, ScheduledJob.STATUS_RUNNING)
            session.commit()

            try:
                handler(session, *args)
                JobQueue.update_job_status(session, job_id, ScheduledJob.STATUS_SUCCESS)
                session.commit()
                logger.info(f"[JOB] Job {job_id} SUCCEEDED")
                return {"status": "success"}

            except Exception as e:
                error_str = str(e)
                logger.exception(f"[JOB] Exception executing job {job_id} {worker}")
                session.rollback()
                JobQueue.update_job_status(session, job_id, ScheduledJob.STATUS_FAILED, error_message=error_str)
                session.commit()
                return {"status": "failed", "error": error_str}

        except Exception as e:
            logger.exception(f"[JOB] System error in job {job_id}")
            session.rollback()
            return {"status": "system_error", "error": str(e)}
        finally:
            session.close()

    def process_pending_jobs(self, limit: int = 5) -> Dict[str, int]:
        """Process a batch of due jobs."""
        session = self.session_factory()
        try:
            due = JobQueue.get_due_jobs(
                session,
                workers=self.handlers.keys(),
                limit=limit,
                stale_after=self.stale_after,
            )
            job_ids = [job.id for job in due]
        finally:
            session.close()

        stats = {"processed": 0, "successful": 0, "failed": 0}

        if not job_ids:
            logger.info("[JOB] No due jobs found.")
            return stats

        logger.info(f"[JOB] Found {len(job_ids)} due jobs")

        for job_id in job_ids:
            result = self.execute_job(job_id)
            stats["processed"] += 1
            if result.get("status") == "success":
                stats["successful"] += 1
            else:
                stats["failed"] += 1

        logger.info(f"[JOB] Batch complete: {stats}")
        return stats


def main():
    parser = argparse.ArgumentParser(description="Background job runner")
    parser.add_argument("--job-id", type=int, help="Execute a specific job ID")
    parser.add_argument("--limit", type=int, default=5, help="Number of due jobs to process")
    parser.add_argument("--loop", action="store_true", help="Run in a loop")

    args = parser.parse_args()

    runner = JobRunner()

    if args.job_id:
        runner.execute_job(args.job_id)
    elif args.loop:
        interval = load_settings().job_poll_interval_seconds
        logger.info("Starting polling loop...")
        while True:
            runner.process_pending_jobs(limit=args.limit)
            time.sleep(interval)
    else:
        runner.process_pending_jobs(limit=args.limit)

if __name__ == "__main__":
    main()
