from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from django.core.exceptions import DisallowedHost
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.datastructures import CaseInsensitiveMapping


@dataclass(frozen=True)
class InboundRequest:
    """Framework-independent view of one webhook delivery."""

    method: str
    url: str
    headers: Mapping[str, str]
    body: bytes
    ip: Optional[str] = None
    user_agent: str = ""
    received_at: datetime = field(default_factory=timezone.now)

    @classmethod
    def coerce(cls, request) -> "InboundRequest":
        if isinstance(request, cls):
            return request
        return cls.from_http_request(request)

    @classmethod
    def from_http_request(cls, request) -> "InboundRequest":
        # request.body must be read before any parser consumes the stream.
        body = request.body
        return cls(
            method=request.method.upper(),
            url=_absolute_url(request),
            headers=CaseInsensitiveMapping(dict(request.headers)),
            body=body,
            ip=_client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "")[:512],
        )

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "InboundRequest":
        if "body_base64" in data:
            try:
                body = base64.b64decode(data["body_base64"])
            except (binascii.Error, TypeError, ValueError):
                body = b""
        else:
            body = str(data.get("body") or "").encode("utf-8")

        received_at = None
        if data.get("timestamp"):
            received_at = parse_datetime(str(data["timestamp"]))

        return cls(
            method=str(data.get("method") or "POST"),
            url=str(data.get("url") or ""),
            headers=CaseInsensitiveMapping(dict(data.get("headers") or {})),
            body=body,
            ip=data.get("ip"),
            user_agent=str(data.get("user_agent") or ""),
            received_at=received_at or timezone.now(),
        )

    def header(self, name: str) -> Optional[str]:
        if not name:
            return None
        return self.headers.get(name)

    def snapshot(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers.items()),
            "ip": self.ip,
            "user_agent": self.user_agent,
            "timestamp": self.received_at.isoformat(),
        }
        try:
            data["body"] = self.body.decode("utf-8")
        except UnicodeDecodeError:
            data["body_base64"] = base64.b64encode(self.body).decode("ascii")
        return data


def _absolute_url(request) -> str:
    try:
        return request.build_absolute_uri()
    except DisallowedHost:
        return request.get_full_path()


def _client_ip(request) -> Optional[str]:
    forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")
