# services/job_service.py

from typing import Callable, Dict, Optional

import structlog
from sqlalchemy.orm import Session, sessionmaker

from splitsync.core.exceptions import RemoteUnavailableError
from splitsync.models.orm.job import DeferredJobORM, JobType
from splitsync.repositories.job_repo import JobRepository
from splitsync.repositories.remote_repo import RemoteRepository, default_remote

logger = structlog.get_logger(__name__)

JobHandler = Callable[[dict], None]


class JobService:
    """Hands remote operations off to the deferred job outbox."""

    def __init__(self, db: Optional[Session] = None, session_factory: Optional[sessionmaker] = None):
        """
        Args:
            db: Session owned by the caller; every enqueue uses it.
            session_factory: Used instead of ``db`` to open a short-lived
                session per enqueue.
        """
        if db is None and session_factory is None:
            raise ValueError("JobService needs a session or a session factory")
        self.db = db
        self.session_factory = session_factory

    @classmethod
    def default(cls) -> "JobService":
        """A service on the configured job database, one session per enqueue."""
        from splitsync.core.db import SessionLocal, ensure_db

        ensure_db()
        return cls(session_factory=SessionLocal)

    def _enqueue(self, job_type: JobType, payload: dict) -> DeferredJobORM:
        if self.db is not None:
            job = JobRepository(self.db).create_job(job_type, payload)
        else:
            with self.session_factory() as db:
                job = JobRepository(db).create_job(job_type, payload)
        logger.info("job_enqueued", job_id=job.job_id, job_type=job_type.value)
        return job

    def enqueue_create_identifier(self, identifier_type: str, visitor_id: str, value) -> DeferredJobORM:
        return self._enqueue(
            JobType.CREATE_IDENTIFIER,
            {"identifier_type": identifier_type, "visitor_id": visitor_id, "value": str(value)},
        )

    def enqueue_create_alias(self, existing_id: str, alias_id: str) -> DeferredJobORM:
        return self._enqueue(
            JobType.CREATE_ALIAS,
            {"existing_id": existing_id, "alias_id": alias_id},
        )

    def enqueue_create_assignment(self, visitor_id: str, split_name: str, variant: str) -> DeferredJobORM:
        return self._enqueue(
            JobType.CREATE_ASSIGNMENT,
            {"visitor_id": visitor_id, "split_name": split_name, "variant": variant},
        )


class JobRunner:
    """
    Replays pending jobs. Meant to be driven by an external scheduler
    (cron, a worker loop, ...); delivery is at-least-once.

    A transient remote failure leaves the job pending for the next pass. Any
    other error marks the job FAILED with the error recorded. Jobs without a
    handler are left untouched.
    """

    def __init__(
        self,
        db: Session,
        remote: Optional[RemoteRepository] = None,
        handlers: Optional[Dict[JobType, JobHandler]] = None,
    ):
        self.job_repo = JobRepository(db)
        remote = remote or default_remote()
        self.handlers: Dict[JobType, JobHandler] = {
            JobType.CREATE_IDENTIFIER: lambda payload: remote.create_identifier(**payload),
            JobType.CREATE_ASSIGNMENT: lambda payload: remote.create_assignment(**payload),
        }
        if handlers:
            self.handlers.update(handlers)

    def run_pending(self, limit: int = 100) -> int:
        """Runs up to ``limit`` pending jobs and returns how many completed."""
        completed = 0
        for job in self.job_repo.get_pending_jobs(limit=limit):
            handler = self.handlers.get(job.job_type)
            if handler is None:
                logger.warning("job_handler_missing", job_id=job.job_id, job_type=job.job_type.value)
                continue

            try:
                handler(dict(job.payload))
            except RemoteUnavailableError as e:
                self.job_repo.record_attempt(job, str(e))
                logger.warning("job_deferred_again", job_id=job.job_id, attempts=job.attempts)
            except Exception as e:
                self.job_repo.record_attempt(job, str(e), failed=True)
                logger.error("job_failed", job_id=job.job_id, job_type=job.job_type.value, error=str(e))
            else:
                self.job_repo.mark_done(job)
                completed += 1

        return completed
