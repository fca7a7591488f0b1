# webhooks/views.py
import logging

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from .config import WebhookConfigNotFound, get_config
from .inbound import InboundRequest
from .models import FailedWebhook
from .serializers import FailedWebhookSerializer
from .services import RetryNotAllowed, accept_webhook, retry_failed_webhook
from .validators import SignatureValidator

logger = logging.getLogger(__name__)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def receive_webhook(request, name):
    try:
        config = get_config(name)
    except WebhookConfigNotFound:
        logger.warning("Webhook received for unconfigured provider %s", name)
        return Response({"error": "Unknown webhook"}, status=status.HTTP_404_NOT_FOUND)

    # Snapshot before DRF parses request.data and consumes the stream.
    inbound = InboundRequest.from_http_request(request)
    result = SignatureValidator().check(inbound, config)
    if not result.is_valid:
        return Response({"error": "Invalid signature"}, status=status.HTTP_401_UNAUTHORIZED)

    call = accept_webhook(inbound, config, result.payload)
    return Response({"detail": "Webhook received.", "id": str(call.uuid)}, status=status.HTTP_202_ACCEPTED)


class FailedWebhookViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = FailedWebhookSerializer
    permission_classes = [permissions.IsAdminUser]

    def get_queryset(self):
        queryset = FailedWebhook.objects.all().order_by("-failed_at")
        status_value = self.request.query_params.get("status")
        if status_value:
            queryset = queryset.filter(status=status_value)
        type_value = self.request.query_params.get("type")
        if type_value:
            queryset = queryset.filter(webhook_type=type_value)
        return queryset

    @action(detail=True, methods=["post"])
    def retry(self, request, pk=None):
        failed = self.get_object()
        try:
            result = retry_failed_webhook(failed)
        except RetryNotAllowed:
            failed.refresh_from_db()
            return Response(
                {"detail": f"Webhook is {failed.status} and cannot be retried."},
                status=status.HTTP_409_CONFLICT,
            )

        payload = self.get_serializer(failed).data
        payload["outcome"] = result.outcome.value
        response_status = status.HTTP_200_OK if result.is_valid else status.HTTP_422_UNPROCESSABLE_ENTITY
        return Response(payload, status=response_status)

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        failed = self.get_object()
        failed.mark_resolved()
        return Response(self.get_serializer(failed).data)
