# webhooks/models.py
import base64
import uuid

from django.db import models
from django.utils import timezone


class Provider(models.TextChoices):
    COMPARE_MY_MOVE = "compare-my-move", "Compare My Move"
    REALLY_MOVING = "really-moving", "Really Moving"
    PIN_LOCAL = "pin-local", "PinLocal"


class FailureReason(models.TextChoices):
    SIGNATURE_VALIDATION_FAILED = "signature_validation_failed", "Signature validation failed"


class FailedWebhookStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RETRIED = "retried", "Retried"
    RESOLVED = "resolved", "Resolved"


class WebhookCall(models.Model):
    """A delivery that passed signature validation and was queued for processing."""

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=64, db_index=True)
    url = models.CharField(max_length=512, blank=True)
    headers = models.JSONField(default=dict, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    raw_body = models.TextField(blank=True)
    raw_body_base64 = models.TextField(blank=True, help_text="Set instead of raw_body when the body is not UTF-8.")
    exception = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"WebhookCall [{self.name}] {self.uuid}"

    @property
    def body(self) -> bytes:
        if self.raw_body_base64:
            return base64.b64decode(self.raw_body_base64)
        return self.raw_body.encode("utf-8")

    def mark_processed(self):
        self.processed_at = timezone.now()
        self.exception = ""
        self.save(update_fields=["processed_at", "exception"])

    def mark_failed(self, exc: Exception):
        self.attempts += 1
        self.exception = f"{type(exc).__name__}: {exc}"
        self.save(update_fields=["attempts", "exception"])


class FailedWebhook(models.Model):
    """Snapshot of a delivery rejected by signature validation, kept for review and replay."""

    webhook_type = models.CharField(max_length=64, db_index=True)
    failure_reason = models.CharField(
        max_length=64,
        choices=FailureReason.choices,
        default=FailureReason.SIGNATURE_VALIDATION_FAILED,
    )
    request_data = models.JSONField(default=dict)
    config_data = models.JSONField(default=dict)
    detail = models.TextField(blank=True)
    status = models.CharField(
        max_length=20, choices=FailedWebhookStatus.choices, default=FailedWebhookStatus.PENDING
    )
    retry_count = models.PositiveIntegerField(default=0)
    last_retry_error = models.TextField(blank=True)
    failed_at = models.DateTimeField(default=timezone.now)
    retried_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-failed_at",)
        indexes = [
            models.Index(fields=["webhook_type", "status"], name="failed_webhook_type_status_idx"),
        ]

    def __str__(self):
        return f"FailedWebhook [{self.webhook_type}] {self.status} @ {self.failed_at}"

    @property
    def can_retry(self) -> bool:
        return self.status == FailedWebhookStatus.PENDING

    def mark_retried(self):
        self.status = FailedWebhookStatus.RETRIED
        self.retry_count += 1
        self.retried_at = timezone.now()
        self.last_retry_error = ""
        self.save(update_fields=["status", "retry_count", "retried_at", "last_retry_error"])

    def mark_retry_failed(self, error: str):
        self.retry_count += 1
        self.retried_at = timezone.now()
        self.last_retry_error = error
        self.save(update_fields=["retry_count", "retried_at", "last_retry_error"])

    def mark_resolved(self):
        self.status = FailedWebhookStatus.RESOLVED
        self.resolved_at = timezone.now()
        self.save(update_fields=["status", "resolved_at"])
