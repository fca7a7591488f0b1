from django.dispatch import Signal

# Sent with ``lead`` (processors.Lead) and ``webhook_call`` once a validated
# delivery has been normalized. CRM receivers create customers and orders.
lead_received = Signal()
