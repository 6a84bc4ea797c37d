"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from sqlalchemy import Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backup_scheduler.types import JobStatus, NotificationType

STALE_JOB_ERROR = "Backup job timed out"


class DbClient(Protocol):
    """Interface for the job and notification tables."""

    def create_backup_job(
        self, user_id: str, backup_type: str, scheduled_at: float | None = None
    ) -> "BackupJob":
        ...

    def get_job(self, job_id: str) -> Optional["BackupJob"]:
        ...

    def list_jobs(self, user_id: str, limit: int = 50) -> list["BackupJob"]:
        ...

    def list_due_jobs(
        self, now: float, limit: int | None = None
    ) -> list["BackupJob"]:
        ...

    def claim_job(self, job_id: str, now: float) -> Optional["BackupJob"]:
        ...

    def complete_job(self, job_id: str, now: float) -> Optional["BackupJob"]:
        ...

    def fail_job(
        self, job_id: str, error_message: str, now: float
    ) -> Optional["BackupJob"]:
        ...

    def fail_stale_jobs(self, older_than: float, now: float) -> list["BackupJob"]:
        ...

    def insert_notification(self, notification: "Notification") -> None:
        ...

    def list_notifications(
        self, user_id: str, limit: int = 50
    ) -> list["Notification"]:
        ...


@dataclass
class BackupJob:
    job_id: str
    user_id: str
    backup_type: str
    status: JobStatus
    scheduled_at: float
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    error_message: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "user_id": self.user_id,
            "backup_type": self.backup_type,
            "status": self.status.value,
            "scheduled_at": self.scheduled_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "error_message": self.error_message,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Notification:
    user_id: str
    type: NotificationType
    title: str
    message: str
    entity_id: str
    entity_type: str = "backup_job"
    notification_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "created_at": self.created_at,
        }


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.jobs: Dict[str, BackupJob] = {}
        self.notifications: List[Notification] = []
        self._lock = threading.Lock()

    def create_backup_job(
        self, user_id: str, backup_type: str, scheduled_at: float | None = None
    ) -> BackupJob:
        now = time.time()
        record = BackupJob(
            job_id=uuid.uuid4().hex,
            user_id=user_id,
            backup_type=backup_type,
            status=JobStatus.PENDING,
            scheduled_at=now if scheduled_at is None else scheduled_at,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self.jobs[record.job_id] = record
        return record

    def get_job(self, job_id: str) -> Optional[BackupJob]:
        return self.jobs.get(job_id)

    def list_jobs(self, user_id: str, limit: int = 50) -> list[BackupJob]:
        jobs = [job for job in self.jobs.values() if job.user_id == user_id]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[:limit]

    def list_due_jobs(self, now: float, limit: int | None = None) -> list[BackupJob]:
        due = [
            job
            for job in self.jobs.values()
            if job.status == JobStatus.PENDING and job.scheduled_at <= now
        ]
        due.sort(key=lambda job: (job.scheduled_at, job.created_at))
        return due[:limit] if limit else due

    def claim_job(self, job_id: str, now: float) -> Optional[BackupJob]:
        with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.status != JobStatus.PENDING:
                return None
            job.status = JobStatus.PROCESSING
            job.started_at = now
            job.updated_at = now
            return job

    def complete_job(self, job_id: str, now: float) -> Optional[BackupJob]:
        with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.status != JobStatus.PROCESSING:
                return None
            job.status = JobStatus.COMPLETED
            job.completed_at = now
            job.updated_at = now
            return job

    def fail_job(
        self, job_id: str, error_message: str, now: float
    ) -> Optional[BackupJob]:
        with self._lock:
            job = self.jobs.get(job_id)
            if not job or job.status != JobStatus.PROCESSING:
                return None
            job.status = JobStatus.FAILED
            job.error_message = error_message
            job.completed_at = now
            job.updated_at = now
            return job

    def fail_stale_jobs(self, older_than: float, now: float) -> list[BackupJob]:
        failed: list[BackupJob] = []
        with self._lock:
            for job in self.jobs.values():
                if (
                    job.status == JobStatus.PROCESSING
                    and job.started_at is not None
                    and job.started_at < older_than
                ):
                    job.status = JobStatus.FAILED
                    job.error_message = STALE_JOB_ERROR
                    job.completed_at = now
                    job.updated_at = now
                    failed.append(job)
        return failed

    def insert_notification(self, notification: Notification) -> None:
        with self._lock:
            self.notifications.append(notification)

    def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        items = [n for n in self.notifications if n.user_id == user_id]
        items.sort(key=lambda n: n.created_at, reverse=True)
        return items[:limit]


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Status transitions are conditional UPDATEs so two scheduler runs racing on
    the same job cannot both claim it.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_job(self, row: "BackupJobRow") -> BackupJob:
        return BackupJob(
            job_id=row.job_id,
            user_id=row.user_id,
            backup_type=row.backup_type,
            status=JobStatus(row.status),
            scheduled_at=row.scheduled_at,
            started_at=row.started_at,
            completed_at=row.completed_at,
            error_message=row.error_message,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_notification(self, row: "NotificationRow") -> Notification:
        return Notification(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            created_at=row.created_at,
        )

    def create_backup_job(
        self, user_id: str, backup_type: str, scheduled_at: float | None = None
    ) -> BackupJob:
        now = time.time()
        with self.Session() as session:
            row = BackupJobRow(
                job_id=uuid.uuid4().hex,
                user_id=user_id,
                backup_type=backup_type,
                status=JobStatus.PENDING.value,
                scheduled_at=now if scheduled_at is None else scheduled_at,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_job(row)

    def get_job(self, job_id: str) -> Optional[BackupJob]:
        with self.Session() as session:
            row = session.get(BackupJobRow, job_id)
            if not row:
                return None
            return self._to_job(row)

    def list_jobs(self, user_id: str, limit: int = 50) -> list[BackupJob]:
        with self.Session() as session:
            stmt = (
                select(BackupJobRow)
                .where(BackupJobRow.user_id == user_id)
                .order_by(BackupJobRow.created_at.desc())
                .limit(limit)
            )
            return [self._to_job(row) for row in session.execute(stmt).scalars()]

    def list_due_jobs(self, now: float, limit: int | None = None) -> list[BackupJob]:
        with self.Session() as session:
            stmt = (
                select(BackupJobRow)
                .where(
                    BackupJobRow.status == JobStatus.PENDING.value,
                    BackupJobRow.scheduled_at <= now,
                )
                .order_by(BackupJobRow.scheduled_at.asc(), BackupJobRow.created_at.asc())
            )
            if limit:
                stmt = stmt.limit(limit)
            return [self._to_job(row) for row in session.execute(stmt).scalars()]

    def _transition(
        self,
        job_id: str,
        from_status: JobStatus,
        values: dict,
    ) -> Optional[BackupJob]:
        with self.Session() as session:
            updated = (
                session.query(BackupJobRow)
                .filter(
                    BackupJobRow.job_id == job_id,
                    BackupJobRow.status == from_status.value,
                )
                .update(values, synchronize_session=False)
            )
            session.commit()
            if not updated:
                return None
            row = session.get(BackupJobRow, job_id)
            return self._to_job(row) if row else None

    def claim_job(self, job_id: str, now: float) -> Optional[BackupJob]:
        return self._transition(
            job_id,
            JobStatus.PENDING,
            {
                BackupJobRow.status: JobStatus.PROCESSING.value,
                BackupJobRow.started_at: now,
                BackupJobRow.updated_at: now,
            },
        )

    def complete_job(self, job_id: str, now: float) -> Optional[BackupJob]:
        return self._transition(
            job_id,
            JobStatus.PROCESSING,
            {
                BackupJobRow.status: JobStatus.COMPLETED.value,
                BackupJobRow.completed_at: now,
                BackupJobRow.updated_at: now,
            },
        )

    def fail_job(
        self, job_id: str, error_message: str, now: float
    ) -> Optional[BackupJob]:
        return self._transition(
            job_id,
            JobStatus.PROCESSING,
            {
                BackupJobRow.status: JobStatus.FAILED.value,
                BackupJobRow.error_message: error_message,
                BackupJobRow.completed_at: now,
                BackupJobRow.updated_at: now,
            },
        )

    def fail_stale_jobs(self, older_than: float, now: float) -> list[BackupJob]:
        with self.Session() as session:
            stmt = (
                select(BackupJobRow)
                .where(
                    BackupJobRow.status == JobStatus.PROCESSING.value,
                    BackupJobRow.started_at != None,
                    BackupJobRow.started_at < older_than,
                )
                .with_for_update(skip_locked=True)
            )
            rows = list(session.execute(stmt).scalars())
            for row in rows:
                row.status = JobStatus.FAILED.value
                row.error_message = STALE_JOB_ERROR
                row.completed_at = now
                row.updated_at = now
            session.commit()
            return [self._to_job(row) for row in rows]

    def insert_notification(self, notification: Notification) -> None:
        with self.Session() as session:
            session.add(
                NotificationRow(
                    notification_id=notification.notification_id,
                    user_id=notification.user_id,
                    type=notification.type.value,
                    title=notification.title,
                    message=notification.message,
                    entity_type=notification.entity_type,
                    entity_id=notification.entity_id,
                    created_at=notification.created_at,
                )
            )
            session.commit()

    def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        with self.Session() as session:
            stmt = (
                select(NotificationRow)
                .where(NotificationRow.user_id == user_id)
                .order_by(NotificationRow.created_at.desc())
                .limit(limit)
            )
            return [
                self._to_notification(row) for row in session.execute(stmt).scalars()
            ]


Base = declarative_base()


class BackupJobRow(Base):
    __tablename__ = "backup_jobs"

    job_id = Column("id", String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    backup_type = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    scheduled_at = Column(Float, nullable=False, index=True)
    started_at = Column(Float, nullable=True)
    completed_at = Column(Float, nullable=True)
    error_message = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class NotificationRow(Base):
    __tablename__ = "notifications"

    notification_id = Column("id", String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
