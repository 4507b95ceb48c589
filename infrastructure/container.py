"""
组合根 - 根据配置装配仓储、服务、观察者和结账门面
"""
from __future__ import annotations

from typing import List, Optional

from application.factories.decorator_factory import DecoratorFactory
from application.factories.payment_factory import PaymentFactory
from application.factories.strategy_factory import StrategyFactory
from application.services.cart_service import CartService
from application.services.checkout_service import CheckoutFacade
from application.services.customer_service import CustomerService
from application.services.debit_service import DebitService
from application.services.event_subject import EventSubject
from application.services.inventory_service import InventoryService
from application.services.transaction_service import TransactionService
from core.config import Settings, get_settings
from core.logging_config import get_logger
from domain.store.repository import StoreRepository
from infrastructure.database import build_engine, build_session_factory, create_tables, sqlite_url
from infrastructure.notifications import (
    AuditLogObserver,
    EmailObserver,
    MetricsObserver,
    SMSObserver,
    WebhookObserver,
)
from infrastructure.repositories.file_repository import FileStoreRepository
from infrastructure.repositories.memory_repository import MemoryStoreRepository
from infrastructure.repositories.sqlalchemy_repository import SQLAlchemyStoreRepository
from infrastructure.seed import seed_store


logger = get_logger(__name__)


def build_repository(settings: Settings) -> StoreRepository:
    db = settings.database
    if db.driver == "file":
        return FileStoreRepository(db.file_path)
    if db.driver == "sqlite":
        engine = build_engine(sqlite_url(db.path), echo=db.echo)
        return SQLAlchemyStoreRepository(build_session_factory(engine), engine=engine)
    return MemoryStoreRepository()


class Container:
    """应用容器：持有所有长生命周期对象"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        repository: Optional[StoreRepository] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.repository = repository or build_repository(self.settings)

        self.subject = EventSubject(self.settings.notifications.observer_timeout_seconds)
        self.inventory = InventoryService(self.repository)
        self.customers = CustomerService(self.repository)
        self.carts = CartService(self.repository)
        self.transactions = TransactionService(self.repository, self.subject)
        self.debit = DebitService(self.carts, self.settings.currency)

        self.payment_factory = PaymentFactory(self.settings.payment)
        self.decorator_factory = DecoratorFactory(self.settings.decorators)
        self.strategy_factory = StrategyFactory(self.settings.strategy)
        self.checkout = CheckoutFacade(
            inventory=self.inventory,
            customers=self.customers,
            carts=self.carts,
            transactions=self.transactions,
            payment_factory=self.payment_factory,
            decorator_factory=self.decorator_factory,
            strategy_factory=self.strategy_factory,
            subject=self.subject,
            settings=self.settings.payment,
        )

        self.metrics: Optional[MetricsObserver] = None
        self.email: Optional[EmailObserver] = None
        self._closeables: List[object] = []
        self._started = False

    def _build_observers(self) -> None:
        cfg = self.settings.notifications
        if self.settings.metrics.enabled:
            self.metrics = MetricsObserver(self.settings.metrics.export_interval_seconds)
            self.metrics.start()
            self.subject.attach(self.metrics)
            self._closeables.append(self.metrics)
        if cfg.audit.enabled:
            audit = AuditLogObserver(cfg.audit.log_path)
            self.subject.attach(audit)
            self._closeables.append(audit)
        if cfg.email.enabled:
            self.email = EmailObserver(cfg.email)
            self.email.start()
            self.subject.attach(self.email)
            self._closeables.append(self.email)
        if cfg.sms.enabled:
            self.subject.attach(SMSObserver(cfg.sms))
        if cfg.webhook.enabled and cfg.webhook.url:
            webhook = WebhookObserver(cfg.webhook)
            self.subject.attach(webhook)
            self._closeables.append(webhook)

    async def startup(self) -> None:
        if self._started:
            return
        if isinstance(self.repository, SQLAlchemyStoreRepository) and self.repository.engine is not None:
            await create_tables(self.repository.engine)
        if self.settings.database.seed:
            await seed_store(self.repository)
        self._build_observers()
        self._started = True
        logger.info(
            "container_started",
            driver=self.settings.database.driver,
            observers=[obs.name for obs in self.subject.observers()],
        )

    async def shutdown(self) -> None:
        if not self._started:
            return
        await self.subject.drain()
        for resource in reversed(self._closeables):
            try:
                await resource.close()
            except Exception as exc:
                logger.error("resource_close_failed", resource=type(resource).__name__, error=str(exc))
        self._closeables = []
        await self.repository.close()
        self._started = False
        logger.info("container_stopped")
