"""
HTTP routes for the backup scheduler API.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from backup_scheduler.db import DbClient
from backup_scheduler.dependencies import get_db_client, get_scheduler_factory
from backup_scheduler.scheduler import BackupScheduler
from backup_scheduler.schemas import (
    BackupJobResponse,
    ErrorResponse,
    ListBackupJobsResponse,
    ListNotificationsResponse,
    NotificationResponse,
    ScheduleBackupPayload,
    SchedulerRunResponse,
)
from backup_scheduler.types import BackupType

logger = logging.getLogger(__name__)

router = APIRouter()

WEEKLY_BACKUP_INTERVAL_SECONDS = 7 * 24 * 60 * 60


@router.post(
    "/backup-scheduler",
    response_model=SchedulerRunResponse,
    responses={500: {"model": ErrorResponse}},
)
def run_backup_scheduler(
    scheduler_factory: Callable[[], BackupScheduler] = Depends(
        get_scheduler_factory
    ),
):
    """
    Process every due backup job. The request body is ignored.
    """
    logger.info("Running backup scheduler...")
    try:
        result = scheduler_factory().run_once()
    except Exception:
        logger.exception("Backup scheduler error")
        return JSONResponse(
            status_code=500, content={"error": "Backup scheduler failed"}
        )
    return SchedulerRunResponse(
        success=True,
        processed_jobs=result.processed_jobs,
        message="Backup scheduler completed successfully",
    )


@router.post("/backup-jobs", response_model=BackupJobResponse, status_code=202)
def schedule_backup(
    payload: ScheduleBackupPayload, db: DbClient = Depends(get_db_client)
):
    scheduled_at = payload.scheduled_at
    if scheduled_at is None and payload.backup_type == BackupType.WEEKLY_CHAT:
        # Weekly backups run a week after they are requested.
        scheduled_at = time.time() + WEEKLY_BACKUP_INTERVAL_SECONDS
    job = db.create_backup_job(
        payload.user_id, payload.backup_type.value, scheduled_at
    )
    logger.info(
        "Scheduled %s backup job %s for user %s",
        job.backup_type,
        job.job_id,
        job.user_id,
    )
    return BackupJobResponse(**job.as_dict())


@router.get("/backup-jobs", response_model=ListBackupJobsResponse)
def list_backup_jobs(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    jobs = db.list_jobs(user_id, limit=limit)
    return ListBackupJobsResponse(
        jobs=[BackupJobResponse(**job.as_dict()) for job in jobs]
    )


@router.get("/backup-jobs/{job_id}", response_model=BackupJobResponse)
def backup_job_status(job_id: str, db: DbClient = Depends(get_db_client)):
    job = db.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return BackupJobResponse(**job.as_dict())


@router.get("/notifications", response_model=ListNotificationsResponse)
def list_notifications(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=500),
    db: DbClient = Depends(get_db_client),
):
    notifications = db.list_notifications(user_id, limit=limit)
    return ListNotificationsResponse(
        notifications=[NotificationResponse(**n.as_dict()) for n in notifications]
    )
