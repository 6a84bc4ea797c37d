"""
Pydantic schemas for the backup scheduler API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from backup_scheduler.types import BackupType


class SchedulerRunResponse(BaseModel):
    success: bool
    processed_jobs: int
    message: str


class ErrorResponse(BaseModel):
    error: str


class ScheduleBackupPayload(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    backup_type: BackupType = BackupType.MANUAL_CHAT
    scheduled_at: Optional[float] = None


class BackupJobResponse(BaseModel):
    job_id: str
    user_id: str
    backup_type: str
    status: str
    scheduled_at: float
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    error_message: Optional[str] = None
    created_at: float
    updated_at: float


class ListBackupJobsResponse(BaseModel):
    jobs: list[BackupJobResponse]


class NotificationResponse(BaseModel):
    notification_id: str
    user_id: str
    type: str
    title: str
    message: str
    entity_type: str
    entity_id: str
    created_at: float


class ListNotificationsResponse(BaseModel):
    notifications: list[NotificationResponse]
