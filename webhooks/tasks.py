import logging

from celery import shared_task
from django.conf import settings

from webhooks.config import get_config
from webhooks.models import WebhookCall
from webhooks.processors import get_processor

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=getattr(settings, "WEBHOOK_PROCESS_MAX_RETRIES", 3),
    default_retry_delay=getattr(settings, "WEBHOOK_PROCESS_RETRY_DELAY_SECONDS", 60),
)
def process_webhook(self, call_id: int, webhook_type: str):
    call = WebhookCall.objects.get(id=call_id)
    logger.info(
        "Processing webhook type=%s id=%s created_at=%s",
        webhook_type,
        call.uuid,
        call.created_at.isoformat(),
    )

    try:
        processor = get_processor(get_config(webhook_type))
        result = processor.process(call)
    except Exception as exc:
        logger.exception("Error processing webhook type=%s id=%s", webhook_type, call.uuid)
        call.mark_failed(exc)
        raise self.retry(exc=exc)

    if result:
        call.mark_processed()
        logger.info("Webhook processed successfully type=%s id=%s", webhook_type, call.uuid)
    else:
        logger.warning("Webhook processing failed type=%s id=%s", webhook_type, call.uuid)
    return bool(result)
