"""
配置文件 - 项目配置管理
"""
from datetime import datetime
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    driver: str = "memory"  # memory, file, sqlite
    path: str = "data/ecommerce.db"
    file_path: str = "data/store.json"
    echo: bool = False
    seed: bool = True

    @field_validator("driver")
    @classmethod
    def _normalize_driver(cls, v: str) -> str:
        v = (v or "memory").lower()
        if v == "sqlite3":
            v = "sqlite"
        if v not in ("memory", "file", "sqlite"):
            raise ValueError(f"unsupported database driver: {v}")
        return v


class LoggingSettings(BaseModel):
    level: str = "info"
    format: str = "console"  # console, json


class InstrumentSettings(BaseModel):
    enabled: bool = True
    min_amount: Decimal = Decimal("1")
    max_amount: Decimal = Decimal("10000")
    latency_seconds: float = 0.1


class DemoInstrumentSettings(BaseModel):
    """Instrument credentials used when a checkout request carries none."""

    card_number: str = "4532015112830366"
    card_holder: str = "John Doe"
    expiry_date: str = "12/25"
    cvv: str = "123"
    paypal_email: str = "user@example.com"
    paypal_password: str = "password"
    wallet_address: str = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
    crypto_type: str = "BTC"


class PaymentSettings(BaseModel):
    timeout_seconds: float = 30.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    credit_card: InstrumentSettings = Field(default_factory=InstrumentSettings)
    paypal: InstrumentSettings = Field(
        default_factory=lambda: InstrumentSettings(max_amount=Decimal("5000"), latency_seconds=0.15)
    )
    crypto: InstrumentSettings = Field(
        default_factory=lambda: InstrumentSettings(
            min_amount=Decimal("10"), max_amount=Decimal("50000"), latency_seconds=0.2
        )
    )
    demo: DemoInstrumentSettings = Field(default_factory=DemoInstrumentSettings)


class StrategySettings(BaseModel):
    instant_min_amount: Decimal = Decimal("1")
    instant_max_amount: Decimal = Decimal("10000")
    deferred_min_amount: Decimal = Decimal("100")
    deferred_max_amount: Decimal = Decimal("10000")
    deferred_installments: int = 3
    deferred_interest_rate: Decimal = Decimal("0")


class DiscountCodeSettings(BaseModel):
    type: str = "percentage"
    value: Decimal
    min_amount: Decimal = Decimal("0")
    max_discount: Decimal = Decimal("0")
    expires_at: Optional[datetime] = None


class DiscountSettings(BaseModel):
    enabled: bool = True
    default_type: str = "percentage"
    default_value: Decimal = Decimal("10")
    max_percentage: Decimal = Decimal("50")
    max_fixed_amount: Decimal = Decimal("100")
    validity_days: int = 30
    codes: Dict[str, DiscountCodeSettings] = Field(
        default_factory=lambda: {
            "SAVE10": DiscountCodeSettings(type="percentage", value=Decimal("10")),
            "WELCOME20": DiscountCodeSettings(type="fixed", value=Decimal("20"), min_amount=Decimal("50")),
        }
    )


class CashbackSettings(BaseModel):
    enabled: bool = True
    tier1_threshold: Decimal = Decimal("100")
    tier1_percentage: Decimal = Decimal("1")
    tier2_percentage: Decimal = Decimal("2")


class FraudDetectionSettings(BaseModel):
    enabled: bool = True
    max_risk_score: int = 70
    velocity_window_seconds: float = 3600.0
    max_transactions_per_window: int = 10


class TaxSettings(BaseModel):
    enabled: bool = True
    default_rate: Decimal = Decimal("8")
    rates: Dict[str, Decimal] = Field(
        default_factory=lambda: {
            "CA": Decimal("7.25"),
            "NY": Decimal("8.875"),
            "TX": Decimal("6.25"),
            "FL": Decimal("6"),
        }
    )


class LoyaltyPointsSettings(BaseModel):
    enabled: bool = True
    points_to_currency_ratio: Decimal = Decimal("100")
    max_redemption_percentage: Decimal = Decimal("50")


class DecoratorSettings(BaseModel):
    discount: DiscountSettings = Field(default_factory=DiscountSettings)
    cashback: CashbackSettings = Field(default_factory=CashbackSettings)
    fraud_detection: FraudDetectionSettings = Field(default_factory=FraudDetectionSettings)
    tax: TaxSettings = Field(default_factory=TaxSettings)
    loyalty_points: LoyaltyPointsSettings = Field(default_factory=LoyaltyPointsSettings)


class EmailSettings(BaseModel):
    enabled: bool = True
    smtp_host: str = "localhost"
    smtp_port: int = 587
    from_address: str = "noreply@example.com"
    worker_pool_size: int = 3
    queue_size: int = 100
    send_delay_seconds: float = 0.05


class SMSSettings(BaseModel):
    enabled: bool = True
    provider: str = "mock"
    rate_limit: int = 10  # messages per minute


class WebhookSettings(BaseModel):
    enabled: bool = False
    url: Optional[str] = None
    timeout_seconds: float = 5.0
    retry_attempts: int = 3


class AuditSettings(BaseModel):
    enabled: bool = True
    log_path: str = "logs/audit.log"


class NotificationSettings(BaseModel):
    observer_timeout_seconds: float = 10.0
    email: EmailSettings = Field(default_factory=EmailSettings)
    sms: SMSSettings = Field(default_factory=SMSSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)


class MetricsSettings(BaseModel):
    enabled: bool = True
    export_interval_seconds: float = 60.0


class CurrencySettings(BaseModel):
    """Exchange rates expressed in the pivot currency (KZT)."""

    pivot: str = "KZT"
    rates: Dict[str, Decimal] = Field(
        default_factory=lambda: {
            "USD": Decimal("538"),
            "EUR": Decimal("580"),
            "RUB": Decimal("5.8"),
            "CNY": Decimal("75"),
            "KZT": Decimal("1"),
        }
    )


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="E-Commerce Payment System")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")

    CORS_ORIGINS: list = Field(default=["http://localhost:3000", "http://localhost:8000"])

    DEFAULT_PAGE_SIZE: int = Field(default=10)
    MAX_PAGE_SIZE: int = Field(default=100)

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    # 分组配置：采用嵌套模型，环境变量形如 PAYMENT__RETRY_ATTEMPTS=5
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    payment: PaymentSettings = Field(default_factory=PaymentSettings)
    strategy: StrategySettings = Field(default_factory=StrategySettings)
    decorators: DecoratorSettings = Field(default_factory=DecoratorSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    currency: CurrencySettings = Field(default_factory=CurrencySettings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
