"""
Enumerations shared across the backup scheduler.
"""

from __future__ import annotations

from enum import Enum


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class BackupType(str, Enum):
    WEEKLY_CHAT = "weekly_chat"
    MANUAL_CHAT = "manual_chat"
    FULL = "full"
    INCREMENTAL = "incremental"


class NotificationType(str, Enum):
    BACKUP_COMPLETED = "backup_completed"
    BACKUP_FAILED = "backup_failed"
