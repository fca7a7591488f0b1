import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FailedWebhook",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("webhook_type", models.CharField(db_index=True, max_length=64)),
                (
                    "failure_reason",
                    models.CharField(
                        choices=[("signature_validation_failed", "Signature validation failed")],
                        default="signature_validation_failed",
                        max_length=64,
                    ),
                ),
                ("request_data", models.JSONField(default=dict)),
                ("config_data", models.JSONField(default=dict)),
                ("detail", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("retried", "Retried"), ("resolved", "Resolved")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("retry_count", models.PositiveIntegerField(default=0)),
                ("last_retry_error", models.TextField(blank=True)),
                ("failed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("retried_at", models.DateTimeField(blank=True, null=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-failed_at",),
                "indexes": [
                    models.Index(fields=["webhook_type", "status"], name="failed_webhook_type_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookCall",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(db_index=True, max_length=64)),
                ("url", models.CharField(blank=True, max_length=512)),
                ("headers", models.JSONField(blank=True, default=dict)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("raw_body", models.TextField(blank=True)),
                ("exception", models.TextField(blank=True)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-created_at",),
            },
        ),
    ]
