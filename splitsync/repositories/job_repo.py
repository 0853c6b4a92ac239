# repositories/job_repo.py
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from splitsync.models.orm.job import DeferredJobORM, JobStatus, JobType
from typing import Optional
import uuid


class JobRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_job(self, job_type: JobType, payload: dict) -> DeferredJobORM:
        """Persists a new pending job and returns it."""
        try:
            db_job = DeferredJobORM(
                job_id=str(uuid.uuid4()),
                job_type=job_type,
                payload=payload,
                status=JobStatus.PENDING,
                attempts=0,
            )

            self.db.add(db_job)
            self.db.commit()
            self.db.refresh(db_job)

            return db_job

        except SQLAlchemyError as e:
            self.db.rollback()
            raise RuntimeError(f"A database error occurred while enqueueing {job_type.value}: {e}")

    def get_job(self, job_id: str) -> Optional[DeferredJobORM]:
        return self.db.get(DeferredJobORM, job_id)

    def get_pending_jobs(self, limit: int = 100) -> list[DeferredJobORM]:
        """Oldest pending jobs first."""
        stmt = (
            select(DeferredJobORM)
            .where(DeferredJobORM.status == JobStatus.PENDING)
            .order_by(DeferredJobORM.created_at)
            .limit(limit)
        )

        return list(self.db.scalars(stmt).all())

    def mark_done(self, job: DeferredJobORM) -> DeferredJobORM:
        job.status = JobStatus.DONE
        job.attempts += 1
        job.last_error = None
        self.db.commit()
        return job

    def record_attempt(self, job: DeferredJobORM, error: str, failed: bool = False) -> DeferredJobORM:
        """Counts a failed attempt; the job stays pending unless ``failed``."""
        job.attempts += 1
        job.last_error = error
        if failed:
            job.status = JobStatus.FAILED
        self.db.commit()
        return job
