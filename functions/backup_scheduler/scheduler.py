"""
Scheduler loop that drives due backup jobs to completion or failure.

Each run reads the due set from the store, claims every job with a
conditional update, calls the executor once per claimed job and records a
terminal status plus a user notification. Jobs are processed sequentially.
Executor failures are captured per job; store failures abort the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from backup_scheduler.db import BackupJob, DbClient, Notification
from backup_scheduler.executor import BackupExecutor, ExecutionResult
from backup_scheduler.types import JobStatus, NotificationType

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"

COMPLETED_TITLE = "Backup completed"
COMPLETED_MESSAGE = "Your chat history was backed up successfully"
FAILED_TITLE = "Backup failed"
FAILED_MESSAGE = "An error occurred while creating your backup"


@dataclass(frozen=True)
class JobOutcome:
    job_id: str
    user_id: str
    status: JobStatus
    error_message: Optional[str] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.COMPLETED


@dataclass
class SchedulerRunResult:
    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def processed_jobs(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.skipped)

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if not o.skipped and o.succeeded)

    @property
    def failed(self) -> int:
        return sum(
            1
            for o in self.outcomes
            if not o.skipped and o.status == JobStatus.FAILED
        )


class BackupScheduler:
    def __init__(
        self,
        db: DbClient,
        executor: BackupExecutor,
        *,
        clock: Callable[[], float] = time.time,
        batch_size: Optional[int] = None,
    ):
        self.db = db
        self.executor = executor
        self.clock = clock
        self.batch_size = batch_size

    def run_once(self) -> SchedulerRunResult:
        """Process every job that is pending and due at the current time."""
        now = self.clock()
        due_jobs = self.db.list_due_jobs(now, limit=self.batch_size)
        logger.info("Found %d pending backup jobs", len(due_jobs))

        result = SchedulerRunResult()
        for job in due_jobs:
            result.outcomes.append(self._process(job))
        logger.info(
            "Backup scheduler run finished: %d processed, %d completed, %d failed",
            result.processed_jobs,
            result.completed,
            result.failed,
        )
        return result

    def fail_stale_jobs(self, timeout_seconds: float) -> list[BackupJob]:
        """
        Fail jobs left in ``processing`` longer than ``timeout_seconds``.

        A host terminated mid-run leaves its claimed job in ``processing``;
        this moves such jobs to ``failed`` and notifies their owners. They are
        never put back to ``pending``.
        """
        now = self.clock()
        stale = self.db.fail_stale_jobs(now - timeout_seconds, now)
        for job in stale:
            logger.warning(
                "Backup job %s stuck in processing since %s; marked failed",
                job.job_id,
                job.started_at,
            )
            self._notify(job, NotificationType.BACKUP_FAILED)
        return stale

    def _process(self, job: BackupJob) -> JobOutcome:
        claimed = self.db.claim_job(job.job_id, self.clock())
        if claimed is None:
            logger.info("Backup job %s already claimed; skipping", job.job_id)
            return JobOutcome(
                job_id=job.job_id,
                user_id=job.user_id,
                status=JobStatus.PROCESSING,
                skipped=True,
            )

        logger.info(
            "Processing backup job %s for user %s", claimed.job_id, claimed.user_id
        )
        execution = self._execute(claimed)
        if execution.ok:
            logger.info("Backup completed for job %s: %s", claimed.job_id, execution.payload)
            return self._finish(claimed, JobStatus.COMPLETED)

        error_message = execution.error or UNKNOWN_ERROR
        logger.error("Backup job %s failed: %s", claimed.job_id, error_message)
        return self._finish(claimed, JobStatus.FAILED, error_message)

    def _execute(self, job: BackupJob) -> ExecutionResult:
        try:
            return self.executor.execute(job.user_id, job.backup_type)
        except Exception as exc:
            logger.exception("Backup executor raised for job %s", job.job_id)
            return ExecutionResult(ok=False, error=str(exc) or UNKNOWN_ERROR)

    def _finish(
        self,
        job: BackupJob,
        status: JobStatus,
        error_message: Optional[str] = None,
    ) -> JobOutcome:
        now = self.clock()
        if status == JobStatus.COMPLETED:
            updated = self.db.complete_job(job.job_id, now)
            notification_type = NotificationType.BACKUP_COMPLETED
        else:
            updated = self.db.fail_job(job.job_id, error_message or UNKNOWN_ERROR, now)
            notification_type = NotificationType.BACKUP_FAILED

        if updated is None:
            # Another process (the stale-job sweep) already finished this job.
            current = self.db.get_job(job.job_id)
            logger.warning(
                "Backup job %s left processing before it could be marked %s",
                job.job_id,
                status.value,
            )
            return JobOutcome(
                job_id=job.job_id,
                user_id=job.user_id,
                status=current.status if current else status,
                error_message=current.error_message if current else error_message,
            )

        self._notify(updated, notification_type)
        return JobOutcome(
            job_id=updated.job_id,
            user_id=updated.user_id,
            status=updated.status,
            error_message=updated.error_message,
        )

    def _notify(self, job: BackupJob, notification_type: NotificationType) -> None:
        if notification_type == NotificationType.BACKUP_COMPLETED:
            title, message = COMPLETED_TITLE, COMPLETED_MESSAGE
        else:
            title, message = FAILED_TITLE, FAILED_MESSAGE
        self.db.insert_notification(
            Notification(
                user_id=job.user_id,
                type=notification_type,
                title=title,
                message=message,
                entity_id=job.job_id,
            )
        )
