# webhooks/urls.py
from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import FailedWebhookViewSet, receive_webhook

router = DefaultRouter()
router.register(r"failed", FailedWebhookViewSet, basename="failed-webhook")

urlpatterns = router.urls + [
    path("<slug:name>/", receive_webhook, name="receive_webhook"),
]
