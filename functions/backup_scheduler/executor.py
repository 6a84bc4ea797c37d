"""
Clients for the external service that performs the actual backup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import requests

from backup_scheduler.config import DEFAULT_EXECUTOR_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    ok: bool
    status_code: Optional[int] = None
    payload: Any = None
    error: Optional[str] = None


class BackupExecutor(Protocol):
    """Runs one backup for a user."""

    def execute(self, user_id: str, backup_type: str) -> ExecutionResult:
        ...


@dataclass
class HttpBackupExecutor:
    """
    Calls the backup edge function over HTTP.

    Non-2xx responses come back as a failed ExecutionResult; transport errors
    (connection refused, timeouts) propagate as requests exceptions.
    """

    url: str
    service_key: str = ""
    timeout: float = DEFAULT_EXECUTOR_TIMEOUT_SECONDS
    session: requests.Session = field(default_factory=requests.Session)

    def execute(self, user_id: str, backup_type: str) -> ExecutionResult:
        headers = {"Content-Type": "application/json"}
        if self.service_key:
            headers["Authorization"] = f"Bearer {self.service_key}"
        response = self.session.post(
            self.url,
            json={
                "action": "create_backup",
                "user_id": user_id,
                "backup_type": backup_type,
            },
            headers=headers,
            timeout=self.timeout,
        )
        if not response.ok:
            return ExecutionResult(
                ok=False,
                status_code=response.status_code,
                error=f"Backup failed with status: {response.status_code}",
            )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        return ExecutionResult(ok=True, status_code=response.status_code, payload=payload)


@dataclass
class NoopBackupExecutor:
    """Executor for in-memory development runs; every backup succeeds."""

    calls: list[tuple[str, str]] = field(default_factory=list)

    def execute(self, user_id: str, backup_type: str) -> ExecutionResult:
        self.calls.append((user_id, backup_type))
        logger.info("Noop backup for user %s (%s)", user_id, backup_type)
        return ExecutionResult(ok=True, status_code=200, payload={"success": True})
