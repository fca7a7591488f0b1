from __future__ import annotations

import logging

from .config import WebhookConfig
from .inbound import InboundRequest
from .models import FailedWebhook, FailedWebhookStatus, FailureReason

logger = logging.getLogger(__name__)


class FailedWebhookRecorder:
    """
    Persist rejected deliveries for debugging and manual retry.

    ``record`` never raises: losing the audit row must not change the
    caller's response.
    """

    def record(self, request, config: WebhookConfig, result=None) -> None:
        ip = None
        try:
            inbound = InboundRequest.coerce(request)
            ip = inbound.ip
            failed = FailedWebhook.objects.create(
                webhook_type=config.name,
                failure_reason=FailureReason.SIGNATURE_VALIDATION_FAILED,
                request_data=inbound.snapshot(),
                config_data=config.redacted(),
                detail=result.describe() if result is not None else "",
                status=FailedWebhookStatus.PENDING,
                failed_at=inbound.received_at,
            )
        except Exception:
            logger.critical(
                "CRITICAL: Failed to store failed webhook type=%s ip=%s",
                config.name,
                ip,
                exc_info=True,
            )
            return

        logger.error(
            "Failed webhook stored id=%s type=%s reason=%s can_retry=%s",
            failed.id,
            config.name,
            failed.failure_reason,
            failed.can_retry,
        )
