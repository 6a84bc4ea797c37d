"""
Dependency wiring for the FastAPI app and the worker.
"""

from __future__ import annotations

from typing import Callable

from backup_scheduler.config import get_settings
from backup_scheduler.db import DbClient, InMemoryDbClient, SqlDbClient
from backup_scheduler.executor import (
    BackupExecutor,
    HttpBackupExecutor,
    NoopBackupExecutor,
)
from backup_scheduler.scheduler import BackupScheduler

_db_client: DbClient | None = None
_executor: BackupExecutor | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so job state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_backup_executor() -> BackupExecutor:
    global _executor
    if _executor:
        return _executor

    settings = get_settings()
    executor_url = settings.resolved_executor_url()
    if settings.use_in_memory_backends or not executor_url:
        _executor = NoopBackupExecutor()
    else:
        _executor = HttpBackupExecutor(
            url=executor_url,
            service_key=settings.supabase_service_role_key or "",
            timeout=settings.backup_executor_timeout_seconds,
        )
    return _executor


def get_scheduler() -> BackupScheduler:
    """
    Build a scheduler from the shared clients. Cheap, so not cached.
    """
    settings = get_settings()
    return BackupScheduler(
        get_db_client(),
        get_backup_executor(),
        batch_size=settings.scheduler_batch_size,
    )


def get_scheduler_factory() -> Callable[[], BackupScheduler]:
    """
    Hand routes the builder rather than a built scheduler, so a store that
    cannot be reached fails inside the route's own error handling.
    """
    return get_scheduler
