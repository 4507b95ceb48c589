"""
Payment factory: builds payment instruments from a method name and config.
"""
from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

from application.dtos.checkout import PaymentDetails
from core.config import InstrumentSettings, PaymentSettings
from core.logging_config import get_logger
from domain.common.exceptions import DomainValidationException
from domain.payment.base import Payment, PaymentConfig
from domain.payment.instruments import CreditCardPayment, CryptoPayment, PayPalPayment


logger = get_logger(__name__)

REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "credit_card": ("card_number", "card_holder", "expiry_date", "cvv"),
    "paypal": ("paypal_email", "paypal_password"),
    "crypto": ("wallet_address", "crypto_type"),
}


class PaymentFactory:
    def __init__(self, settings: Optional[PaymentSettings] = None) -> None:
        self.settings = settings or PaymentSettings()
        self._builders: Dict[str, Callable[[PaymentConfig, InstrumentSettings], Payment]] = {
            "credit_card": self._build_credit_card,
            "paypal": self._build_paypal,
            "crypto": self._build_crypto,
        }

    def supported_types(self) -> list[str]:
        return list(self._builders)

    def is_supported(self, payment_type: str) -> bool:
        return payment_type in self._builders

    def _instrument_settings(self, payment_type: str) -> InstrumentSettings:
        return getattr(self.settings, payment_type)

    def create_payment(self, payment_type: str, config: PaymentConfig) -> Payment:
        payment_type = (payment_type or "").lower()
        if not self.is_supported(payment_type):
            raise DomainValidationException(
                f"unsupported payment type: {payment_type}",
                field="payment_method",
                details={"supported": self.supported_types()},
            )
        instrument = self._instrument_settings(payment_type)
        if not instrument.enabled:
            raise DomainValidationException(
                f"payment method {payment_type} is disabled", field="payment_method"
            )
        self.validate_config(payment_type, config)
        payment = self._builders[payment_type](config, instrument)
        logger.info("payment_instrument_created", payment_type=payment_type)
        return payment

    def validate_config(self, payment_type: str, config: PaymentConfig) -> None:
        missing = [name for name in REQUIRED_FIELDS.get(payment_type, ()) if not getattr(config, name)]
        if missing:
            raise DomainValidationException(
                f"missing required fields for {payment_type}: {', '.join(missing)}",
                field=missing[0],
                details={"missing": missing},
            )

    def config_for(self, payment_type: str, details: Optional[PaymentDetails] = None) -> PaymentConfig:
        """Caller-supplied credentials, falling back to the configured demo instrument."""
        values = self.settings.demo.model_dump()
        if details is not None:
            values.update(details.model_dump(exclude_none=True))
        return PaymentConfig(**values)

    @staticmethod
    def _limits(instrument: InstrumentSettings) -> dict:
        return {
            "min_amount": instrument.min_amount,
            "max_amount": instrument.max_amount,
            "latency": instrument.latency_seconds,
        }

    def _build_credit_card(self, config: PaymentConfig, instrument: InstrumentSettings) -> Payment:
        return CreditCardPayment(
            config.card_number, config.card_holder, config.expiry_date, config.cvv,
            **self._limits(instrument),
        )

    def _build_paypal(self, config: PaymentConfig, instrument: InstrumentSettings) -> Payment:
        return PayPalPayment(config.paypal_email, config.paypal_password, **self._limits(instrument))

    def _build_crypto(self, config: PaymentConfig, instrument: InstrumentSettings) -> Payment:
        return CryptoPayment(config.wallet_address, config.crypto_type, **self._limits(instrument))
