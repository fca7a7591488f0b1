import logging

from django.apps import AppConfig
from django.core.exceptions import ImproperlyConfigured


logger = logging.getLogger(__name__)


class WebhooksConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "webhooks"
    verbose_name = "Lead webhooks"

    def ready(self) -> None:
        from .config import load_configs
        from .signatures import SCHEMES

        try:
            configs = load_configs()
        except ImproperlyConfigured:
            raise
        except Exception:  # pragma: no cover - defensive guard during startup
            logger.exception("Webhook configuration failed to load during app ready.")
            return

        for config in configs:
            if config.name not in SCHEMES:
                logger.warning("Webhook config %s has no signature scheme; deliveries will be rejected.", config.name)
            elif not config.signing_secret:
                logger.warning("Webhook config %s has no signing secret; deliveries will be rejected.", config.name)
