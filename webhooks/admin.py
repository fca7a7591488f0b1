from django.contrib import admin, messages

from .models import FailedWebhook, WebhookCall
from .services import RetryNotAllowed, retry_failed_webhook


@admin.register(FailedWebhook)
class FailedWebhookAdmin(admin.ModelAdmin):
    list_display = ("webhook_type", "failure_reason", "status", "retry_count", "failed_at")
    list_filter = ("webhook_type", "status", "failure_reason")
    search_fields = ("detail", "last_retry_error")
    readonly_fields = (
        "webhook_type",
        "failure_reason",
        "request_data",
        "config_data",
        "detail",
        "retry_count",
        "last_retry_error",
        "failed_at",
        "retried_at",
        "resolved_at",
        "created_at",
    )
    ordering = ("-failed_at",)
    actions = ("retry_selected", "mark_resolved")

    @admin.action(description="Retry selected failed webhooks")
    def retry_selected(self, request, queryset):
        replayed = 0
        for failed in queryset:
            try:
                if retry_failed_webhook(failed).is_valid:
                    replayed += 1
            except RetryNotAllowed:
                continue
        self.message_user(request, f"{replayed} webhook(s) replayed.", messages.SUCCESS)

    @admin.action(description="Mark selected as resolved")
    def mark_resolved(self, request, queryset):
        for failed in queryset:
            failed.mark_resolved()
        self.message_user(request, f"{queryset.count()} webhook(s) resolved.", messages.SUCCESS)


@admin.register(WebhookCall)
class WebhookCallAdmin(admin.ModelAdmin):
    list_display = ("name", "uuid", "attempts", "processed_at", "created_at")
    list_filter = ("name",)
    search_fields = ("uuid", "exception")
    readonly_fields = ("uuid", "name", "url", "headers", "payload", "raw_body", "raw_body_base64", "exception", "attempts", "processed_at", "created_at")
    ordering = ("-created_at",)
