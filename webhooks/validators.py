from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .config import WebhookConfig
from .inbound import InboundRequest
from .recorder import FailedWebhookRecorder
from .signatures import SCHEMES, SignatureScheme, signatures_match

logger = logging.getLogger(__name__)


class ValidationOutcome(enum.Enum):
    VALID = "valid"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED_PAYLOAD = "malformed_payload"
    UNKNOWN_PROVIDER = "unknown_provider"
    MISSING_SECRET = "missing_secret"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationResult:
    outcome: ValidationOutcome
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.outcome is ValidationOutcome.VALID

    def __bool__(self) -> bool:
        return self.is_valid

    def describe(self) -> str:
        if self.message:
            return f"{self.outcome.value}: {self.message}"
        return self.outcome.value


class SignatureValidator:
    """
    Multi-provider webhook signature validator.

    The provider scheme is selected by ``config.name``. Every non-valid
    outcome is reported to the recorder exactly once per ``check`` call;
    ``evaluate`` is the side-effect free decision.
    """

    def __init__(
        self,
        recorder: Optional[FailedWebhookRecorder] = None,
        schemes: Optional[Mapping[str, SignatureScheme]] = None,
    ):
        self.recorder = recorder if recorder is not None else FailedWebhookRecorder()
        self.schemes = dict(SCHEMES if schemes is None else schemes)

    def validate(self, request, config: WebhookConfig) -> bool:
        return self.check(request, config).is_valid

    def check(self, request, config: WebhookConfig) -> ValidationResult:
        inbound = InboundRequest.coerce(request)
        result = self.evaluate(inbound, config)
        if not result.is_valid:
            self.recorder.record(inbound, config, result=result)
        return result

    def evaluate(self, request, config: WebhookConfig) -> ValidationResult:
        inbound = InboundRequest.coerce(request)

        scheme = self.schemes.get(config.name)
        if scheme is None:
            logger.error("Unknown webhook type: %s", config.name)
            return ValidationResult(ValidationOutcome.UNKNOWN_PROVIDER, config.name)

        if not config.signing_secret:
            logger.warning("Signing secret not configured for %s; rejecting webhook", config.name)
            return ValidationResult(ValidationOutcome.MISSING_SECRET)

        try:
            extraction = scheme.extract(inbound, config)
            if not extraction.ok:
                logger.warning("Malformed %s webhook payload: %s", config.name, extraction.error)
                return ValidationResult(
                    ValidationOutcome.MALFORMED_PAYLOAD, extraction.error, payload=extraction.payload
                )

            generated = scheme.sign(
                extraction.signed_data.encode("utf-8"),
                config.signing_secret.encode("utf-8"),
            )
            is_valid = signatures_match(generated, extraction.signature)
        except Exception as exc:
            logger.exception(
                "Error computing %s webhook signature (secret=%s)", config.name, config.secret_prefix
            )
            return ValidationResult(ValidationOutcome.ERROR, f"{type(exc).__name__}: {exc}")

        logger.debug(
            "%s signature validation signed_data_length=%s received=%s generated=%s result=%s",
            config.name,
            len(extraction.signed_data),
            extraction.signature,
            generated,
            is_valid,
        )

        if not is_valid:
            return ValidationResult(
                ValidationOutcome.INVALID_SIGNATURE,
                "signature mismatch",
                payload=extraction.payload,
            )
        return ValidationResult(ValidationOutcome.VALID, payload=extraction.payload)
