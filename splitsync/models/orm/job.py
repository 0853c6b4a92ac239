from sqlalchemy import Column, String, Integer, DateTime, Text, Enum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
from datetime import datetime, timezone
import enum

from .base import Base

# JSONB on PostgreSQL, generic JSON (text-backed) everywhere else
JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(enum.Enum):
    CREATE_IDENTIFIER = "create_identifier"
    CREATE_ALIAS = "create_alias"
    CREATE_ASSIGNMENT = "create_assignment"


class JobStatus(enum.Enum):
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class DeferredJobORM(Base):
    """A serialized remote operation waiting to be replayed by the job runner."""

    __tablename__ = "deferred_jobs"

    job_id = Column(String, primary_key=True)
    job_type = Column(Enum(JobType), nullable=False, index=True)
    payload = Column(JSON_TYPE, nullable=False)

    status = Column(Enum(JobStatus), default=JobStatus.PENDING, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
