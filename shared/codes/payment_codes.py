"""
Payment and checkout specific codes.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Checkout / payment errors (6xxxx)
    PAYMENT_FAILED = 60000
    INVALID_PAYMENT = 60001
    FRAUD_DETECTED = 60002
    TIMEOUT = 60003
    INSUFFICIENT_FUNDS = 60004
    INVENTORY_ERROR = 60005
