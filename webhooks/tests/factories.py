import base64
import hashlib
import hmac
import json
from urllib.parse import urlencode

from django.utils.datastructures import CaseInsensitiveMapping

from webhooks.config import WebhookConfig
from webhooks.inbound import InboundRequest

SECRET = "whsec-test-0123456789"
PIN_LOCAL_URL = "https://removalswirral.com/pin-local/webhook"
PIN_LOCAL_HEADER = "X-PinLocal-Signature"

TEST_CONFIGS = [
    {"name": "compare-my-move", "signing_secret": SECRET},
    {"name": "really-moving", "signing_secret": SECRET},
    {
        "name": "pin-local",
        "signing_secret": SECRET,
        "signature_header_name": PIN_LOCAL_HEADER,
        "signed_url": PIN_LOCAL_URL,
    },
]

COMPARE_MY_MOVE = WebhookConfig(name="compare-my-move", signing_secret=SECRET)
REALLY_MOVING = WebhookConfig(name="really-moving", signing_secret=SECRET)
PIN_LOCAL = WebhookConfig(
    name="pin-local",
    signing_secret=SECRET,
    signature_header_name=PIN_LOCAL_HEADER,
    signed_url=PIN_LOCAL_URL,
)


def sha256_hex(data: str, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), data.encode(), hashlib.sha256).hexdigest()


def sha1_b64(data: str, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), data.encode(), hashlib.sha1).digest()).decode()


def make_request(body: bytes, headers=None, url="https://leads.example.com/api/webhooks/test/") -> InboundRequest:
    return InboundRequest(
        method="POST",
        url=url,
        headers=CaseInsensitiveMapping(headers or {}),
        body=body,
        ip="203.0.113.7",
        user_agent="provider-agent/1.0",
    )


def timestamp_token_payload(timestamp="1700000000", token="abc", signature=None, **extra) -> dict:
    payload = {"timestamp": timestamp, "token": token}
    payload["signature"] = signature if signature is not None else sha256_hex(f"{timestamp}{token}")
    payload.update(extra)
    return payload


def compare_my_move_body(payload: dict, double: bool = True) -> bytes:
    encoded = json.dumps(payload)
    if double:
        encoded = json.dumps(encoded)
    return encoded.encode()


def really_moving_body(payload: dict) -> bytes:
    return urlencode(payload).encode()


def pin_local_body(lead_data, lead_id="123", lead_code="LC-9", lead_type_id="7", **extra) -> bytes:
    """Form-encode a PinLocal delivery. A str `lead_data` is sent as-is."""
    if not isinstance(lead_data, str):
        lead_data = json.dumps(lead_data)
    params = {
        "lead_id": lead_id,
        "lead_code": lead_code,
        "lead_type_id": lead_type_id,
        "lead_data": lead_data,
    }
    params.update(extra)
    return urlencode(params).encode()


def flip(signature: str, index: int = 0) -> str:
    char = signature[index]
    replacement = "0" if char != "0" else "1"
    return signature[:index] + replacement + signature[index + 1:]
