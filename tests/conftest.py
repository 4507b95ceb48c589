"""Pytest bootstrap configuration.

Every fixture builds its own Settings so tests never depend on a local .env
or on the process environment.
"""
import pytest

from application.services.event_subject import EventSubject
from core.config import (
    AuditSettings,
    DatabaseSettings,
    EmailSettings,
    MetricsSettings,
    NotificationSettings,
    PaymentSettings,
    Settings,
)
from infrastructure.repositories.memory_repository import MemoryStoreRepository
from infrastructure.seed import seed_store
from tests.stubs import RecordingObserver, build_facade, fast_payment_settings


@pytest.fixture
def payment_settings() -> PaymentSettings:
    return fast_payment_settings()


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        DEBUG=False,
        database=DatabaseSettings(driver="memory", seed=True),
        payment=fast_payment_settings(),
        notifications=NotificationSettings(
            observer_timeout_seconds=2.0,
            audit=AuditSettings(log_path=str(tmp_path / "audit.log")),
            email=EmailSettings(send_delay_seconds=0),
        ),
        metrics=MetricsSettings(export_interval_seconds=0),
    )


@pytest.fixture
async def repo() -> MemoryStoreRepository:
    repository = MemoryStoreRepository()
    await seed_store(repository)
    return repository


@pytest.fixture
def subject() -> EventSubject:
    return EventSubject(observer_timeout=2.0)


@pytest.fixture
def recorder(subject) -> RecordingObserver:
    observer = RecordingObserver()
    subject.attach(observer)
    return observer


@pytest.fixture
def facade(repo, subject, payment_settings):
    return build_facade(repo, subject, payment_settings)
