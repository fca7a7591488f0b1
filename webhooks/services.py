from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction

from .config import WebhookConfig, WebhookConfigNotFound, get_config
from .inbound import InboundRequest
from .models import FailedWebhook, WebhookCall
from .tasks import process_webhook
from .validators import SignatureValidator, ValidationOutcome, ValidationResult

logger = logging.getLogger(__name__)


class RetryNotAllowed(Exception):
    """The failed webhook is no longer pending."""


def accept_webhook(request, config: WebhookConfig, payload: Optional[Dict[str, Any]] = None) -> WebhookCall:
    """
    Store a validated delivery and queue it for asynchronous processing.

    The task is queued once the surrounding transaction commits, so a rolled
    back replay never reaches the worker.
    """
    inbound = InboundRequest.coerce(request)
    snapshot = inbound.snapshot()
    call = WebhookCall.objects.create(
        name=config.name,
        url=inbound.url[:512],
        headers=snapshot["headers"],
        payload=payload or {},
        raw_body=snapshot.get("body", ""),
        raw_body_base64=snapshot.get("body_base64", ""),
    )
    transaction.on_commit(lambda: process_webhook.delay(call.id, call.name))
    logger.info("Webhook queued type=%s id=%s", call.name, call.uuid)
    return call


def retry_failed_webhook(
    failed: FailedWebhook, validator: Optional[SignatureValidator] = None
) -> ValidationResult:
    """
    Re-validate a stored delivery against the current configuration.

    A successful replay is accepted like a live delivery and the record is
    marked retried. Replays never create a second failure record. The record
    is locked for the duration, and ``RetryNotAllowed`` is raised when it is
    no longer pending, so concurrent replays of one delivery queue it once.
    """
    with transaction.atomic():
        locked = FailedWebhook.objects.select_for_update().get(pk=failed.pk)
        if not locked.can_retry:
            raise RetryNotAllowed(f"Failed webhook {locked.id} is {locked.status} and cannot be retried.")

        result = _replay(locked, validator or SignatureValidator())

    failed.refresh_from_db()
    return result


def _replay(failed: FailedWebhook, validator: SignatureValidator) -> ValidationResult:
    try:
        config = get_config(failed.webhook_type)
    except WebhookConfigNotFound:
        result = ValidationResult(ValidationOutcome.UNKNOWN_PROVIDER, failed.webhook_type)
        failed.mark_retry_failed(result.describe())
        return result

    inbound = InboundRequest.from_snapshot(failed.request_data)
    result = validator.evaluate(inbound, config)

    if result.is_valid:
        call = accept_webhook(inbound, config, result.payload)
        failed.mark_retried()
        logger.info("Failed webhook %s replayed as call %s", failed.id, call.uuid)
    else:
        failed.mark_retry_failed(result.describe())
        logger.warning("Failed webhook %s still invalid: %s", failed.id, result.describe())
    return result
