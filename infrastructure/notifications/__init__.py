"""Checkout event observers."""
from .audit import AuditLogObserver
from .email import EmailMessage, EmailObserver
from .metrics import MetricsObserver, MetricsSnapshot
from .sms import SMSObserver
from .webhook import WebhookObserver

__all__ = [
    "AuditLogObserver",
    "EmailMessage",
    "EmailObserver",
    "MetricsObserver",
    "MetricsSnapshot",
    "SMSObserver",
    "WebhookObserver",
]
