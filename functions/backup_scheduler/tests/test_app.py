import time
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from backup_scheduler.app import create_app
from backup_scheduler.db import InMemoryDbClient
from backup_scheduler import dependencies
from backup_scheduler.config import Settings
from backup_scheduler.dependencies import get_db_client, get_scheduler_factory
from backup_scheduler.executor import NoopBackupExecutor
from backup_scheduler.scheduler import BackupScheduler
from backup_scheduler.types import JobStatus

NOW = 1_700_000_000.0


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.executor = NoopBackupExecutor()
        self.app = create_app()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_scheduler_factory] = lambda: (
            lambda: BackupScheduler(self.db, self.executor, clock=lambda: NOW)
        )
        self.client = TestClient(self.app)

    def test_scheduler_processes_due_jobs(self):
        due = self.db.create_backup_job("u1", "full", scheduled_at=NOW - 1)
        future = self.db.create_backup_job("u2", "full", scheduled_at=NOW + 60)

        response = self.client.post("/api/backup-scheduler", json={"ignored": True})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "success": True,
                "processed_jobs": 1,
                "message": "Backup scheduler completed successfully",
            },
        )
        self.assertEqual(self.db.get_job(due.job_id).status, JobStatus.COMPLETED)
        self.assertEqual(self.db.get_job(future.job_id).status, JobStatus.PENDING)

    def test_scheduler_accepts_empty_body(self):
        response = self.client.post("/api/backup-scheduler")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["processed_jobs"], 0)

    def test_scheduler_store_failure_returns_500(self):
        def broken(now, limit=None):
            raise RuntimeError("database unavailable")

        self.db.list_due_jobs = broken

        response = self.client.post("/api/backup-scheduler")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Backup scheduler failed"})

    def test_cors_preflight(self):
        response = self.client.options(
            "/api/backup-scheduler",
            headers={
                "Origin": "https://app.example.test",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_schedule_and_get_job(self):
        response = self.client.post(
            "/api/backup-jobs",
            json={"user_id": "u1", "backup_type": "weekly_chat", "scheduled_at": NOW},
        )
        self.assertEqual(response.status_code, 202)
        payload = response.json()
        self.assertEqual(payload["status"], "pending")
        self.assertEqual(payload["backup_type"], "weekly_chat")

        status_resp = self.client.get(f"/api/backup-jobs/{payload['job_id']}")
        self.assertEqual(status_resp.status_code, 200)
        self.assertEqual(status_resp.json()["scheduled_at"], NOW)

    def test_schedule_rejects_unknown_backup_type(self):
        response = self.client.post(
            "/api/backup-jobs", json={"user_id": "u1", "backup_type": "nightly"}
        )
        self.assertEqual(response.status_code, 422)

    def test_unknown_job_is_404(self):
        response = self.client.get("/api/backup-jobs/missing")
        self.assertEqual(response.status_code, 404)

    def test_list_jobs_and_notifications(self):
        self.db.create_backup_job("u1", "full", scheduled_at=NOW - 1)
        self.client.post("/api/backup-scheduler")

        jobs = self.client.get("/api/backup-jobs", params={"user_id": "u1"}).json()
        notes = self.client.get("/api/notifications", params={"user_id": "u1"}).json()

        self.assertEqual(len(jobs["jobs"]), 1)
        self.assertEqual(jobs["jobs"][0]["status"], "completed")
        self.assertEqual(len(notes["notifications"]), 1)
        self.assertEqual(notes["notifications"][0]["type"], "backup_completed")
        self.assertEqual(
            notes["notifications"][0]["entity_id"], jobs["jobs"][0]["job_id"]
        )

    def test_weekly_backup_defaults_to_next_week(self):
        before = time.time()

        response = self.client.post(
            "/api/backup-jobs", json={"user_id": "u1", "backup_type": "weekly_chat"}
        )

        self.assertEqual(response.status_code, 202)
        scheduled_at = response.json()["scheduled_at"]
        week = 7 * 24 * 60 * 60
        self.assertGreaterEqual(scheduled_at, before + week)
        self.assertLessEqual(scheduled_at, time.time() + week)

    def test_manual_backup_defaults_to_now(self):
        before = time.time()

        response = self.client.post("/api/backup-jobs", json={"user_id": "u1"})

        payload = response.json()
        self.assertEqual(payload["backup_type"], "manual_chat")
        self.assertGreaterEqual(payload["scheduled_at"], before)
        self.assertLessEqual(payload["scheduled_at"], time.time())


class UnreachableStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())

    @patch.object(dependencies, "_db_client", None)
    @patch("backup_scheduler.dependencies.get_settings")
    def test_scheduler_returns_json_error_when_store_unreachable(self, mock_settings):
        mock_settings.return_value = Settings(
            database_url="sqlite:////nonexistent_backup_dir/jobs.db",
            use_in_memory_backends=False,
        )

        response = self.client.post("/api/backup-scheduler")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Backup scheduler failed"})
        self.assertIsNone(dependencies._db_client)


if __name__ == "__main__":
    unittest.main()
