from django.core.management.base import BaseCommand

from webhooks.models import FailedWebhook, FailedWebhookStatus
from webhooks.services import RetryNotAllowed, retry_failed_webhook


class Command(BaseCommand):
    help = "Re-validate pending failed webhooks and queue the ones that now pass."

    def add_arguments(self, parser):
        parser.add_argument("--id", dest="ids", type=int, action="append", default=[], help="Failed webhook id (repeatable).")
        parser.add_argument("--type", dest="webhook_type", help="Only retry this provider.")
        parser.add_argument("--limit", type=int, default=100)

    def handle(self, *args, **options):
        failed_webhooks = FailedWebhook.objects.filter(status=FailedWebhookStatus.PENDING).order_by("failed_at")
        if options["ids"]:
            failed_webhooks = failed_webhooks.filter(id__in=options["ids"])
        if options["webhook_type"]:
            failed_webhooks = failed_webhooks.filter(webhook_type=options["webhook_type"])
        failed_webhooks = failed_webhooks[: options["limit"]]

        if not failed_webhooks.exists():
            self.stdout.write("No failed webhooks to retry.")
            return

        for failed in failed_webhooks:
            try:
                result = retry_failed_webhook(failed)
            except RetryNotAllowed as exc:
                self.stdout.write(self.style.WARNING(f"Skipped: {exc}"))
                continue
            if result.is_valid:
                self.stdout.write(self.style.SUCCESS(f"Failed webhook {failed.id} ({failed.webhook_type}) replayed."))
            else:
                self.stdout.write(
                    self.style.WARNING(f"Failed webhook {failed.id} ({failed.webhook_type}) still invalid: {result.describe()}")
                )
