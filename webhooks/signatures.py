"""
Provider signature schemes.

Each provider is described by a ``SignatureScheme``: an extractor that pulls
the signed data, the received signature and the normalized payload out of an
``InboundRequest``, and a signer that turns ``(data, secret)`` into the
provider's signature encoding. Extractors report malformed payloads through
``Extraction.failed`` instead of raising.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit

from django.http import QueryDict

from .config import WebhookConfig
from .inbound import InboundRequest
from .models import Provider

logger = logging.getLogger(__name__)

PIN_LOCAL_ID_FIELDS = ("lead_id", "lead_code", "lead_type_id")


@dataclass(frozen=True)
class Extraction:
    signed_data: str = ""
    signature: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def success(cls, signed_data: str, signature: str, payload: Dict[str, Any]) -> "Extraction":
        return cls(signed_data=signed_data, signature=signature, payload=payload)

    @classmethod
    def failed(cls, error: str, payload: Optional[Dict[str, Any]] = None) -> "Extraction":
        return cls(error=error, payload=payload or {})


Extractor = Callable[[InboundRequest, WebhookConfig], Extraction]
Signer = Callable[[bytes, bytes], str]


@dataclass(frozen=True)
class SignatureScheme:
    extract: Extractor
    sign: Signer


def hmac_sha256_hex(data: bytes, secret: bytes) -> str:
    return hmac.new(secret, data, hashlib.sha256).hexdigest()


def hmac_sha1_base64(data: bytes, secret: bytes) -> str:
    return base64.b64encode(hmac.new(secret, data, hashlib.sha1).digest()).decode("ascii")


def signatures_match(expected: str, received: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def lead_field_value(value: Any) -> str:
    """
    Contribution of one PinLocal field value to the signed data.

    A non-empty sequence contributes its first element; empty values
    contribute nothing. Whole-number floats render without a fraction
    (``1.0`` signs as ``"1"``). Raises ``ValueError`` for values that have
    no plain text form: objects, nested sequences and non-finite or
    exponent-notation floats.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            return ""
        value = value[0]
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (dict, list, tuple)):
        raise ValueError(f"{type(value).__name__} has no text form")
    if isinstance(value, float):
        return _float_text(value)
    return str(value)


def _float_text(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError(f"float {value!r} has no text form")
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        raise ValueError(f"float {text} has no text form")
    return text


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, float):
        try:
            return _float_text(value)
        except ValueError:
            return None
    return str(value)


def _timestamp_token(payload: Mapping[str, Any], provider: str) -> Extraction:
    timestamp = _as_text(payload.get("timestamp"))
    token = _as_text(payload.get("token"))
    signature = _as_text(payload.get("signature"))

    missing = [
        name
        for name, value in (("timestamp", timestamp), ("token", token), ("signature", signature))
        if value is None
    ]
    if missing:
        return Extraction.failed(
            f"{provider} payload missing field(s): {', '.join(missing)}", payload=dict(payload)
        )

    return Extraction.success(f"{timestamp}{token}", signature, dict(payload))


def decode_json_payload(body: bytes) -> tuple[Optional[Dict[str, Any]], str]:
    """
    Decode a JSON body that may have been JSON-encoded twice.

    Returns ``(payload, "")`` or ``(None, error)``.
    """
    try:
        decoded = json.loads(body)
    except (TypeError, ValueError) as exc:
        return None, f"body is not valid JSON: {exc}"

    if isinstance(decoded, str):
        try:
            decoded = json.loads(decoded)
        except ValueError as exc:
            return None, f"double-encoded body is not valid JSON: {exc}"

    if not isinstance(decoded, dict):
        return None, f"decoded body is a {type(decoded).__name__}, expected an object"
    return decoded, ""


def extract_compare_my_move(request: InboundRequest, config: WebhookConfig) -> Extraction:
    payload, error = decode_json_payload(request.body)
    if payload is None:
        return Extraction.failed(error)

    logger.debug(
        "CompareMyMove payload received content_length=%s payload=%s",
        len(request.body),
        payload,
    )
    return _timestamp_token(payload, "CompareMyMove")


def _form_payload(body: bytes) -> Dict[str, Any]:
    query = QueryDict(body, encoding="utf-8")
    return {key: query.get(key) for key in query.keys()}


def extract_really_moving(request: InboundRequest, config: WebhookConfig) -> Extraction:
    payload = _form_payload(request.body)
    logger.debug("ReallyMoving payload received payload=%s", payload)
    return _timestamp_token(payload, "ReallyMoving")


def _pin_local_params(request: InboundRequest) -> Dict[str, Any]:
    """Query string parameters overlaid with the body's; body values win."""
    params = _form_payload(urlsplit(request.url).query.encode())

    stripped = request.body.lstrip()
    if stripped.startswith(b"{"):
        try:
            decoded = json.loads(stripped)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            params.update(decoded)
            return params
    params.update(_form_payload(request.body))
    return params


def extract_pin_local(request: InboundRequest, config: WebhookConfig) -> Extraction:
    params = _pin_local_params(request)
    logger.debug("PinLocal payload received params=%s headers=%s", params, dict(request.headers.items()))

    missing = [name for name in PIN_LOCAL_ID_FIELDS if _as_text(params.get(name)) is None]
    if missing:
        return Extraction.failed(f"PinLocal payload missing field(s): {', '.join(missing)}", payload=params)

    raw_lead_data = params.get("lead_data")
    if isinstance(raw_lead_data, dict):
        lead_data = raw_lead_data
    else:
        try:
            lead_data = json.loads(raw_lead_data or "")
        except (TypeError, ValueError) as exc:
            return Extraction.failed(f"PinLocal lead_data is not valid JSON: {exc}", payload=params)
        if not isinstance(lead_data, dict):
            return Extraction.failed("PinLocal lead_data must be a JSON object", payload=params)

    payload = dict(params)
    payload["lead_data"] = lead_data

    signed_data = config.signed_url + "".join(_as_text(params[name]) for name in PIN_LOCAL_ID_FIELDS)
    for key in sorted(lead_data):
        descriptor = lead_data[key]
        if not isinstance(descriptor, dict) or "value" not in descriptor:
            return Extraction.failed(f"PinLocal lead_data entry '{key}' has no value", payload=payload)
        try:
            signed_data += lead_field_value(descriptor["value"])
        except ValueError as exc:
            return Extraction.failed(
                f"PinLocal lead_data entry '{key}' is not signable: {exc}", payload=payload
            )

    signature = request.header(config.signature_header_name)
    if not signature:
        return Extraction.failed(
            f"PinLocal signature header '{config.signature_header_name}' missing", payload=payload
        )

    return Extraction.success(signed_data, signature, payload)


SCHEMES: Dict[str, SignatureScheme] = {
    Provider.COMPARE_MY_MOVE.value: SignatureScheme(extract=extract_compare_my_move, sign=hmac_sha256_hex),
    Provider.REALLY_MOVING.value: SignatureScheme(extract=extract_really_moving, sign=hmac_sha256_hex),
    Provider.PIN_LOCAL.value: SignatureScheme(extract=extract_pin_local, sign=hmac_sha1_base64),
}
