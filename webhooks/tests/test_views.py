import json
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from webhooks.models import FailedWebhook, FailedWebhookStatus, WebhookCall
from webhooks.tests.factories import (
    PIN_LOCAL_URL,
    TEST_CONFIGS,
    compare_my_move_body,
    flip,
    pin_local_body,
    really_moving_body,
    sha1_b64,
    sha256_hex,
    timestamp_token_payload,
)


@override_settings(WEBHOOK_CLIENT_CONFIGS=TEST_CONFIGS)
@mock.patch("webhooks.services.process_webhook")
class ReceiveWebhookTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _post(self, name, body, content_type, **extra):
        if isinstance(body, bytes):
            body = body.decode()
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(
                reverse("receive_webhook", args=[name]), data=body, content_type=content_type, **extra
            )

    def test_compare_my_move_double_encoded(self, mock_task):
        payload = {"timestamp": "1700000000", "token": "abc", "signature": sha256_hex("1700000000abc")}
        response = self._post("compare-my-move", compare_my_move_body(payload), "application/json")

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        call = WebhookCall.objects.get()
        self.assertEqual(response.json()["id"], str(call.uuid))
        self.assertEqual(call.name, "compare-my-move")
        self.assertEqual(call.payload["token"], "abc")
        mock_task.delay.assert_called_once_with(call.id, "compare-my-move")
        self.assertEqual(FailedWebhook.objects.count(), 0)

    def test_compare_my_move_flipped_signature(self, mock_task):
        payload = {"timestamp": "1700000000", "token": "abc", "signature": flip(sha256_hex("1700000000abc"))}
        response = self._post(
            "compare-my-move",
            compare_my_move_body(payload),
            "application/json",
            HTTP_X_FORWARDED_FOR="198.51.100.4, 10.0.0.1",
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json(), {"error": "Invalid signature"})
        failed = FailedWebhook.objects.get()
        self.assertEqual(failed.failure_reason, "signature_validation_failed")
        self.assertEqual(failed.request_data["ip"], "198.51.100.4")
        self.assertTrue(failed.request_data["url"].endswith("/api/webhooks/compare-my-move/"))
        self.assertFalse(WebhookCall.objects.exists())
        self.assertFalse(mock_task.delay.called)

    def test_really_moving_form_post(self, mock_task):
        body = really_moving_body(timestamp_token_payload(token="rm-1", lead_id="RM42"))
        response = self._post("really-moving", body, "application/x-www-form-urlencoded")

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(WebhookCall.objects.get().payload["lead_id"], "RM42")

    def test_pin_local_header_signature(self, mock_task):
        lead_data = {"b": {"value": "B"}, "a": {"value": "A"}}
        signature = sha1_b64(f"{PIN_LOCAL_URL}123LC-97AB")
        response = self._post(
            "pin-local",
            pin_local_body(lead_data),
            "application/x-www-form-urlencoded",
            HTTP_X_PINLOCAL_SIGNATURE=signature,
        )

        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        call = WebhookCall.objects.get()
        self.assertEqual(call.payload["lead_data"], lead_data)

    def test_unknown_webhook_name(self, mock_task):
        response = self._post("acme-leads", json.dumps({}), "application/json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(FailedWebhook.objects.exists())


@override_settings(WEBHOOK_CLIENT_CONFIGS=TEST_CONFIGS)
class FailedWebhookApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = get_user_model().objects.create_user(
            username="ops", email="ops@example.com", password="pass1234", is_staff=True
        )
        self.client.force_authenticate(self.staff)
        self.valid = FailedWebhook.objects.create(
            webhook_type="compare-my-move",
            request_data={
                "method": "POST",
                "url": "https://leads.example.com/api/webhooks/compare-my-move/",
                "headers": {"Content-Type": "application/json"},
                "body": compare_my_move_body(timestamp_token_payload()).decode(),
            },
            config_data={"name": "compare-my-move"},
        )
        self.invalid = FailedWebhook.objects.create(
            webhook_type="really-moving",
            request_data={"method": "POST", "body": "timestamp=1&token=2&signature=bad"},
            config_data={"name": "really-moving"},
        )

    def test_list_filters_by_type(self):
        response = self.client.get(reverse("failed-webhook-list"), {"type": "really-moving"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [item["id"] for item in response.json()]
        self.assertEqual(ids, [self.invalid.id])

    def test_requires_staff(self):
        user = get_user_model().objects.create_user(username="jo", email="jo@example.com", password="pass1234")
        client = APIClient()
        client.force_authenticate(user)

        response = client.get(reverse("failed-webhook-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch("webhooks.services.process_webhook")
    def test_retry_replays_valid_snapshot(self, mock_task):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse("failed-webhook-retry", args=[self.valid.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["outcome"], "valid")
        self.valid.refresh_from_db()
        self.assertEqual(self.valid.status, FailedWebhookStatus.RETRIED)
        self.assertEqual(self.valid.retry_count, 1)
        mock_task.delay.assert_called_once()
        self.assertEqual(FailedWebhook.objects.count(), 2)

    def test_retry_still_invalid(self):
        response = self.client.post(reverse("failed-webhook-retry", args=[self.invalid.id]))

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.invalid.refresh_from_db()
        self.assertEqual(self.invalid.status, FailedWebhookStatus.PENDING)
        self.assertIn("invalid_signature", self.invalid.last_retry_error)
        self.assertEqual(FailedWebhook.objects.count(), 2)

    def test_resolve_then_retry_conflicts(self):
        response = self.client.post(reverse("failed-webhook-resolve", args=[self.invalid.id]))
        self.assertEqual(response.json()["status"], "resolved")

        response = self.client.post(reverse("failed-webhook-retry", args=[self.invalid.id]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
