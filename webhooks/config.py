from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULT_PROCESSOR = "webhooks.processors.LeadExtractionProcessor"
DEFAULT_VALIDATOR = "webhooks.validators.SignatureValidator"
SECRET_PREFIX_LENGTH = 8


class WebhookConfigNotFound(LookupError):
    pass


@dataclass(frozen=True)
class WebhookConfig:
    name: str
    signing_secret: str = field(default="", repr=False)
    signature_header_name: str = "Signature"
    signed_url: str = ""
    webhook_processor: str = DEFAULT_PROCESSOR

    @property
    def secret_prefix(self) -> str:
        return f"{self.signing_secret[:SECRET_PREFIX_LENGTH]}..."

    def redacted(self) -> Dict[str, Any]:
        """
        Configuration summary safe to persist or log.
        """
        return {
            "name": self.name,
            "signing_secret": self.secret_prefix,
            "signature_header_name": self.signature_header_name,
            "signed_url": self.signed_url,
            "signature_validator": DEFAULT_VALIDATOR,
            "webhook_processor": self.webhook_processor,
            "process_webhook_job": "webhooks.tasks.process_webhook",
        }


_CONFIG_KEYS = frozenset(f.name for f in fields(WebhookConfig))


def _build_config(entry: Dict[str, Any]) -> WebhookConfig:
    if not isinstance(entry, dict):
        raise ImproperlyConfigured("Each WEBHOOK_CLIENT_CONFIGS entry must be a dict.")

    unknown = set(entry) - _CONFIG_KEYS
    if unknown:
        raise ImproperlyConfigured(
            f"Unknown WEBHOOK_CLIENT_CONFIGS keys: {', '.join(sorted(unknown))}"
        )

    name = str(entry.get("name") or "").strip()
    if not name:
        raise ImproperlyConfigured("WEBHOOK_CLIENT_CONFIGS entries require a name.")

    values = dict(entry)
    values["name"] = name
    values["signing_secret"] = str(values.get("signing_secret") or "")
    return WebhookConfig(**values)


def load_configs(raw: Iterable[Dict[str, Any]] | None = None) -> list[WebhookConfig]:
    if raw is None:
        raw = getattr(settings, "WEBHOOK_CLIENT_CONFIGS", []) or []

    configs: list[WebhookConfig] = []
    seen: set[str] = set()
    for entry in raw:
        config = _build_config(entry)
        if config.name in seen:
            raise ImproperlyConfigured(f"Duplicate webhook config name '{config.name}'.")
        seen.add(config.name)
        configs.append(config)
    return configs


def get_config(name: str) -> WebhookConfig:
    for config in load_configs():
        if config.name == name:
            return config
    raise WebhookConfigNotFound(name)
