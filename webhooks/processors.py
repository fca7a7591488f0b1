from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .config import WebhookConfig
from .models import Provider, WebhookCall
from .signals import lead_received
from .signatures import lead_field_value

logger = logging.getLogger(__name__)

_SIGNATURE_FIELDS = frozenset({"signature", "timestamp", "token"})


@dataclass(frozen=True)
class Lead:
    provider: str
    reference: str
    fields: Dict[str, Any] = field(default_factory=dict)


class WebhookProcessor:
    """Business-logic boundary for accepted webhook calls."""

    def process(self, call: WebhookCall) -> bool:
        raise NotImplementedError


class LeadExtractionProcessor(WebhookProcessor):
    """
    Normalize a stored payload into a ``Lead`` and announce it through
    ``lead_received``.
    """

    reference_keys = {
        Provider.COMPARE_MY_MOVE.value: ("lead_id", "id", "reference", "token"),
        Provider.REALLY_MOVING.value: ("lead_id", "id", "reference", "token"),
        Provider.PIN_LOCAL.value: ("lead_id", "lead_code"),
    }

    def process(self, call: WebhookCall) -> bool:
        lead = self.extract_lead(call)
        if lead is None:
            logger.warning("No lead reference found in webhook call %s (%s)", call.uuid, call.name)
            return False

        lead_received.send(sender=self.__class__, lead=lead, webhook_call=call)
        logger.info("Lead %s received from %s", lead.reference, lead.provider)
        return True

    def extract_lead(self, call: WebhookCall) -> Optional[Lead]:
        payload = call.payload if isinstance(call.payload, dict) else {}

        reference = None
        for key in self.reference_keys.get(call.name, ("lead_id", "id")):
            value = payload.get(key)
            if value not in (None, ""):
                reference = str(value)
                break
        if reference is None:
            return None

        fields = {key: value for key, value in payload.items() if key not in _SIGNATURE_FIELDS}
        lead_data = fields.pop("lead_data", None)
        if isinstance(lead_data, dict):
            for key, descriptor in lead_data.items():
                value = descriptor.get("value") if isinstance(descriptor, dict) else descriptor
                try:
                    fields[key] = lead_field_value(value)
                except ValueError:
                    fields[key] = value

        return Lead(provider=call.name, reference=reference, fields=fields)


def get_processor(config: WebhookConfig) -> WebhookProcessor:
    try:
        processor_class = import_string(config.webhook_processor)
    except ImportError as exc:
        raise ImproperlyConfigured(
            f"Cannot import webhook processor '{config.webhook_processor}' for {config.name}."
        ) from exc
    return processor_class()
