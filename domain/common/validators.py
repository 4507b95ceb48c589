"""
Input validators shared by payment instruments and store entities.

All validators raise DomainValidationException carrying the offending field.
"""
from __future__ import annotations

import re
from decimal import Decimal

from domain.common.exceptions import DomainValidationException


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
BTC_ADDRESS_PATTERN = re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$|^bc1[a-z0-9]{39,59}$")
ETH_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

_CARD_SEPARATORS = re.compile(r"[\s-]")
_PHONE_SEPARATORS = re.compile(r"[\s\-()+]")


def normalize_card_number(number: str) -> str:
    return _CARD_SEPARATORS.sub("", number or "")


def luhn_checksum_valid(digits: str) -> bool:
    total = 0
    for index, char in enumerate(reversed(digits)):
        value = int(char)
        if index % 2 == 1:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return total % 10 == 0


def validate_card_number(number: str) -> str:
    """Return the normalized card number or raise."""
    digits = normalize_card_number(number)
    if not digits.isdigit() or not 13 <= len(digits) <= 19:
        raise DomainValidationException("card number must be 13-19 digits", field="card_number")
    if not luhn_checksum_valid(digits):
        raise DomainValidationException("card number failed checksum", field="card_number")
    return digits


def validate_cvv(cvv: str) -> None:
    if not cvv or not cvv.isdigit() or len(cvv) not in (3, 4):
        raise DomainValidationException("CVV must be 3 or 4 digits", field="cvv")


def validate_expiry_date(expiry: str) -> None:
    # 只校验格式与月份范围，不比较当前日期
    if not expiry or not EXPIRY_PATTERN.match(expiry):
        raise DomainValidationException("expiry date must be in MM/YY format", field="expiry_date")


def validate_email(email: str) -> None:
    if not email or not EMAIL_PATTERN.match(email):
        raise DomainValidationException(f"invalid email address: {email}", field="email")


def validate_phone(phone: str) -> str:
    digits = _PHONE_SEPARATORS.sub("", phone or "")
    if not digits.isdigit() or not 10 <= len(digits) <= 15:
        raise DomainValidationException("phone number must contain 10-15 digits", field="phone")
    return digits


def validate_amount_range(amount: Decimal, minimum: Decimal, maximum: Decimal) -> None:
    if amount <= 0:
        raise DomainValidationException(f"amount must be positive: {amount}", field="amount")
    if amount < minimum:
        raise DomainValidationException(
            f"amount {amount} is below minimum {minimum}",
            field="amount",
            details={"min": str(minimum), "max": str(maximum)},
        )
    if amount > maximum:
        raise DomainValidationException(
            f"amount {amount} exceeds maximum {maximum}",
            field="amount",
            details={"min": str(minimum), "max": str(maximum)},
        )


def validate_crypto_address(address: str, crypto_type: str) -> None:
    if crypto_type == "BTC":
        if not 26 <= len(address or "") <= 35 and not (address or "").startswith("bc1"):
            raise DomainValidationException("invalid BTC address length", field="wallet_address")
        if not BTC_ADDRESS_PATTERN.match(address or ""):
            raise DomainValidationException("invalid BTC address format", field="wallet_address")
    elif crypto_type in ("ETH", "USDT"):
        if not ETH_ADDRESS_PATTERN.match(address or ""):
            raise DomainValidationException(f"invalid {crypto_type} address format", field="wallet_address")
    else:
        raise DomainValidationException(f"unsupported crypto type: {crypto_type}", field="crypto_type")
