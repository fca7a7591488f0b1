from rest_framework import serializers

from .models import FailedWebhook


class FailedWebhookSerializer(serializers.ModelSerializer):
    can_retry = serializers.BooleanField(read_only=True)

    class Meta:
        model = FailedWebhook
        fields = [
            "id",
            "webhook_type",
            "failure_reason",
            "detail",
            "status",
            "can_retry",
            "retry_count",
            "last_retry_error",
            "request_data",
            "config_data",
            "failed_at",
            "retried_at",
            "resolved_at",
            "created_at",
        ]
        read_only_fields = fields
