import asyncio
from decimal import Decimal

import pytest

from application.services.event_subject import EventSubject
from domain.payment.base import PaymentResult
from domain.payment.events import EventType
from tests.stubs import RecordingObserver, make_event


@pytest.mark.asyncio
async def test_every_observer_receives_the_event():
    subject = EventSubject()
    first, second = RecordingObserver("first"), RecordingObserver("second")
    subject.attach(first)
    subject.attach(second)
    event = make_event()
    await subject.notify(event)
    assert first.events == [event]
    assert second.events == [event]


@pytest.mark.asyncio
async def test_failing_observer_is_isolated():
    subject = EventSubject()
    broken = RecordingObserver("broken", error=RuntimeError("boom"))
    healthy = RecordingObserver("healthy")
    subject.attach(broken)
    subject.attach(healthy)
    await subject.notify(make_event())
    assert len(healthy.events) == 1


@pytest.mark.asyncio
async def test_slow_observer_times_out_without_blocking_others():
    subject = EventSubject(observer_timeout=0.05)
    slow = RecordingObserver("slow", delay=1.0)
    fast = RecordingObserver("fast")
    subject.attach(slow)
    subject.attach(fast)
    await asyncio.wait_for(subject.notify(make_event()), timeout=0.5)
    assert slow.events == []
    assert len(fast.events) == 1


@pytest.mark.asyncio
async def test_publish_is_fire_and_forget():
    subject = EventSubject()
    observer = RecordingObserver(delay=0.01)
    subject.attach(observer)
    subject.publish(make_event())
    assert observer.events == []
    await subject.drain()
    assert len(observer.events) == 1


@pytest.mark.asyncio
async def test_detach_by_name():
    subject = EventSubject()
    observer = RecordingObserver("gone")
    subject.attach(observer)
    assert subject.detach("gone") is True
    assert subject.detach("gone") is False
    await subject.notify(make_event())
    assert observer.events == []
    assert subject.observers() == []


def test_event_metadata_is_read_only():
    event = make_event(metadata={"customer_email": "a@b.co"})
    with pytest.raises(TypeError):
        event.metadata["x"] = 1  # type: ignore[index]
    payload = event.to_dict()
    assert payload["type"] == "payment_success"
    assert payload["amount"] == "42.50"
    assert payload["metadata"] == {"customer_email": "a@b.co"}


def test_event_serializes_payment_result():
    result = PaymentResult(
        success=True,
        transaction_id="pay-1",
        amount=Decimal("90.00"),
        original_amount=Decimal("100.00"),
        processed_amount=Decimal("90.00"),
        currency="USD",
        payment_method="credit_card",
        applied_decorators=["discount"],
    )
    payload = make_event(result=result).to_dict()
    assert payload["result"]["transaction_id"] == "pay-1"
    assert payload["result"]["amount"] == "90.00"
    assert payload["result"]["original_amount"] == "100.00"
    assert payload["result"]["applied_decorators"] == ["discount"]
    assert make_event().to_dict()["result"] is None
