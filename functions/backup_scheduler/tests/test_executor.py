import unittest
from unittest.mock import MagicMock

import requests

from backup_scheduler.config import Settings
from backup_scheduler.executor import HttpBackupExecutor, NoopBackupExecutor


def _response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


class HttpBackupExecutorTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.executor = HttpBackupExecutor(
            url="https://project.test/functions/v1/google-drive-backup",
            service_key="service-key",
            timeout=12,
            session=self.session,
        )

    def test_posts_create_backup_request(self):
        self.session.post.return_value = _response(200, {"success": True})

        result = self.executor.execute("u1", "weekly_chat")

        self.assertTrue(result.ok)
        self.assertEqual(result.payload, {"success": True})
        self.session.post.assert_called_once_with(
            "https://project.test/functions/v1/google-drive-backup",
            json={
                "action": "create_backup",
                "user_id": "u1",
                "backup_type": "weekly_chat",
            },
            headers={
                "Content-Type": "application/json",
                "Authorization": "Bearer service-key",
            },
            timeout=12,
        )

    def test_non_success_status_is_failure(self):
        self.session.post.return_value = _response(500)

        result = self.executor.execute("u1", "full")

        self.assertFalse(result.ok)
        self.assertEqual(result.status_code, 500)
        self.assertEqual(result.error, "Backup failed with status: 500")

    def test_non_json_body_still_succeeds(self):
        response = _response(204)
        response.json.side_effect = ValueError("no body")
        self.session.post.return_value = response

        result = self.executor.execute("u1", "full")

        self.assertTrue(result.ok)
        self.assertIsNone(result.payload)

    def test_transport_errors_propagate(self):
        self.session.post.side_effect = requests.ConnectionError("network error")

        with self.assertRaises(requests.ConnectionError):
            self.executor.execute("u1", "full")


    def test_default_timeout_matches_settings(self):
        executor = HttpBackupExecutor(url="https://project.test/backup")
        self.assertEqual(
            executor.timeout,
            Settings.model_fields["backup_executor_timeout_seconds"].default,
        )


class NoopBackupExecutorTests(unittest.TestCase):
    def test_records_calls(self):
        executor = NoopBackupExecutor()
        result = executor.execute("u1", "full")
        self.assertTrue(result.ok)
        self.assertEqual(executor.calls, [("u1", "full")])


if __name__ == "__main__":
    unittest.main()
