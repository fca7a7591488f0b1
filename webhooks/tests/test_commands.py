from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase, override_settings

from webhooks.models import FailedWebhook, FailedWebhookStatus, WebhookCall
from webhooks.tests.factories import TEST_CONFIGS, compare_my_move_body, sha256_hex, timestamp_token_payload


@override_settings(WEBHOOK_CLIENT_CONFIGS=TEST_CONFIGS)
class RetryFailedWebhooksCommandTests(TestCase):
    def _failed(self, webhook_type, body, **kwargs):
        return FailedWebhook.objects.create(
            webhook_type=webhook_type,
            request_data={"method": "POST", "url": "", "headers": {}, "body": body},
            config_data={"name": webhook_type},
            **kwargs,
        )

    def test_nothing_to_retry(self):
        out = StringIO()
        call_command("retry_failed_webhooks", stdout=out)
        self.assertIn("No failed webhooks to retry.", out.getvalue())

    @mock.patch("webhooks.services.process_webhook")
    def test_replays_valid_and_reports_invalid(self, mock_task):
        valid = self._failed("compare-my-move", compare_my_move_body(timestamp_token_payload()).decode())
        invalid = self._failed("really-moving", "timestamp=1&token=2&signature=" + sha256_hex("other"))

        out = StringIO()
        with self.captureOnCommitCallbacks(execute=True):
            call_command("retry_failed_webhooks", stdout=out)

        valid.refresh_from_db()
        invalid.refresh_from_db()
        self.assertEqual(valid.status, FailedWebhookStatus.RETRIED)
        self.assertEqual(invalid.status, FailedWebhookStatus.PENDING)
        self.assertEqual(invalid.retry_count, 1)
        self.assertEqual(WebhookCall.objects.count(), 1)
        self.assertIn(f"Failed webhook {valid.id} (compare-my-move) replayed.", out.getvalue())
        self.assertIn(f"Failed webhook {invalid.id} (really-moving) still invalid", out.getvalue())
        mock_task.delay.assert_called_once()

    @mock.patch("webhooks.services.process_webhook")
    def test_filters_by_type_and_skips_resolved(self, mock_task):
        resolved = self._failed(
            "compare-my-move",
            compare_my_move_body(timestamp_token_payload()).decode(),
            status=FailedWebhookStatus.RESOLVED,
        )
        other = self._failed("really-moving", "timestamp=1&token=2&signature=bad")

        call_command("retry_failed_webhooks", "--type", "compare-my-move", stdout=StringIO())

        resolved.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(resolved.status, FailedWebhookStatus.RESOLVED)
        self.assertEqual(other.retry_count, 0)
        self.assertFalse(mock_task.delay.called)

    def test_unconfigured_provider_stays_pending(self):
        failed = self._failed("acme-leads", "{}")

        call_command("retry_failed_webhooks", stdout=StringIO())

        failed.refresh_from_db()
        self.assertEqual(failed.status, FailedWebhookStatus.PENDING)
        self.assertIn("unknown_provider", failed.last_retry_error)
