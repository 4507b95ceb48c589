from decimal import Decimal

import pytest

from application.dtos.checkout import CheckoutOptions, PaymentDetails, SplitPartOption
from domain.common.exceptions import (
    DomainValidationException,
    FraudDetectedException,
    InsufficientFundsException,
    InvalidPaymentException,
    PaymentFailedException,
    classified_cause,
    has_error_code,
)
from domain.payment.entity import TransactionStatus
from domain.payment.events import EventType
from shared.codes.payment_codes import PaymentCode
from tests.stubs import fast_payment_settings
from tests.stubs import SleepRecorder, StubPayment, build_facade


async def stock_of(facade, product_id: str) -> int:
    return (await facade.inventory.get_product(product_id)).stock


def use_stub(facade, stub: StubPayment) -> None:
    facade.payment_factory.create_payment = lambda payment_type, config: stub


@pytest.mark.asyncio
async def test_instant_checkout_happy_path(facade, subject, recorder):
    await facade.carts.add_item("cust-1", "prod-2", 2)

    receipt = await facade.checkout("cust-1", CheckoutOptions())

    assert receipt.subtotal == Decimal("59.98")
    assert receipt.total == Decimal("59.98")
    assert receipt.payment_method == "credit_card"
    assert [item.quantity for item in receipt.items] == [2]
    assert await stock_of(facade, "prod-2") == 48
    assert (await facade.carts.get_or_create_cart("cust-1")).is_empty()

    transaction = await facade.transactions.get_transaction(receipt.transaction_id)
    assert transaction.status is TransactionStatus.COMPLETED
    assert transaction.metadata["strategy"] == "instant"

    await subject.drain()
    assert [event.type for event in recorder.events] == [EventType.PAYMENT_STARTED, EventType.PAYMENT_SUCCESS]
    assert recorder.events[1].metadata["customer_email"] == "john.doe@example.com"
    success = recorder.events[1]
    assert success.result is not None
    assert success.result.amount == Decimal("59.98")
    assert success.result.payment_method == "credit_card"
    assert recorder.events[0].result is None


@pytest.mark.asyncio
async def test_tax_then_discount(facade):
    await facade.carts.add_item("cust-1", "prod-2", 2)

    receipt = await facade.checkout("cust-1", CheckoutOptions(decorators=["tax", "discount"]))

    assert receipt.tax == Decimal("4.35")
    assert receipt.discount == Decimal("6.43")
    assert receipt.total == Decimal("57.90")
    assert receipt.applied_decorators == ["discount", "tax"]


@pytest.mark.asyncio
async def test_loyalty_points_are_redeemed_and_earned(facade):
    await facade.carts.add_item("cust-1", "prod-1", 1)

    receipt = await facade.checkout(
        "cust-1", CheckoutOptions(decorators=["loyalty_points"], loyalty_points=500)
    )

    assert receipt.loyalty_discount == Decimal("5.00")
    assert receipt.total == Decimal("994.99")
    assert receipt.loyalty_points_earned == 999
    assert (await facade.customers.get_customer("cust-1")).loyalty_points == 999


@pytest.mark.asyncio
async def test_empty_cart_is_rejected(facade, subject, recorder):
    with pytest.raises(DomainValidationException):
        await facade.checkout("cust-1", CheckoutOptions())
    await subject.drain()
    assert recorder.events == []


@pytest.mark.asyncio
async def test_insufficient_stock_fails_and_records_transaction(facade, subject, recorder):
    await facade.carts.add_item("cust-1", "prod-1", 5)
    product = await facade.inventory.get_product("prod-1")
    product.stock = 2
    await facade.inventory.repo.update_product(product)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions())

    assert exc.value.details == {"stage": "inventory validation failed"}
    assert has_error_code(exc.value, PaymentCode.INVENTORY_ERROR)
    assert await stock_of(facade, "prod-1") == 2
    [transaction] = await facade.transactions.list_customer_transactions("cust-1")
    assert transaction.status is TransactionStatus.FAILED
    assert not (await facade.carts.get_or_create_cart("cust-1")).is_empty()

    await subject.drain()
    assert recorder.events[-1].type is EventType.PAYMENT_FAILED


@pytest.mark.asyncio
async def test_setup_failure_releases_reserved_stock(facade):
    await facade.carts.add_item("cust-1", "prod-3", 3)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions(decorators=["gift_wrap"]))

    assert exc.value.details == {"stage": "payment setup failed"}
    assert await stock_of(facade, "prod-3") == 100


@pytest.mark.asyncio
async def test_invalid_card_details_fail_setup(facade):
    await facade.carts.add_item("cust-1", "prod-3", 1)
    options = CheckoutOptions(payment_details=PaymentDetails(card_number="1234567890123456"))

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", options)

    assert has_error_code(exc.value, PaymentCode.INVALID_PAYMENT)
    assert classified_cause(exc.value).code == PaymentCode.INVALID_PAYMENT
    assert await stock_of(facade, "prod-3") == 100


@pytest.mark.asyncio
async def test_split_payment_across_instruments(facade):
    await facade.carts.add_item("cust-1", "prod-1", 1)
    options = CheckoutOptions(
        payment_strategy="split",
        split_parts=[
            SplitPartOption(payment_method="credit_card", amount=Decimal("500")),
            SplitPartOption(payment_method="paypal", amount=Decimal("499.99")),
        ],
    )

    receipt = await facade.checkout("cust-1", options)

    assert receipt.payment_method == "split"
    assert receipt.total == Decimal("999.99")
    assert len(receipt.payment_details["split_details"]) == 2


@pytest.mark.asyncio
async def test_split_with_decorators_is_rejected(facade):
    await facade.carts.add_item("cust-1", "prod-1", 1)
    options = CheckoutOptions(
        payment_strategy="split",
        decorators=["tax"],
        split_parts=[SplitPartOption(payment_method="credit_card", amount=Decimal("999.99"))],
    )

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", options)

    assert exc.value.details == {"stage": "payment setup failed"}
    assert await stock_of(facade, "prod-1") == 10


@pytest.mark.asyncio
async def test_deferred_charges_first_installment(facade):
    await facade.carts.add_item("cust-1", "prod-5", 1)

    receipt = await facade.checkout("cust-1", CheckoutOptions(payment_strategy="deferred", installments=3))

    assert receipt.total == Decimal("133.33")
    assert receipt.subtotal == Decimal("399.99")
    assert receipt.payment_details["remaining_installments"] == 2


@pytest.mark.asyncio
async def test_retryable_failures_are_retried(repo, subject, payment_settings):
    sleep = SleepRecorder()
    facade = build_facade(repo, subject, payment_settings, sleep=sleep)
    stub = StubPayment(error=InsufficientFundsException(), failures=2)
    use_stub(facade, stub)
    await facade.carts.add_item("cust-1", "prod-2", 1)

    receipt = await facade.checkout("cust-1", CheckoutOptions())

    assert len(stub.calls) == 3
    assert sleep.delays == [0.0, 0.0]
    assert receipt.total == Decimal("29.99")


@pytest.mark.asyncio
async def test_retries_are_bounded(repo, subject, payment_settings):
    sleep = SleepRecorder()
    facade = build_facade(repo, subject, payment_settings, sleep=sleep)
    stub = StubPayment(error=InsufficientFundsException(), failures=99)
    use_stub(facade, stub)
    await facade.carts.add_item("cust-1", "prod-2", 1)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions())

    assert len(stub.calls) == 4
    assert len(sleep.delays) == 3
    assert exc.value.details == {"stage": "payment processing failed"}
    assert has_error_code(exc.value, PaymentCode.INSUFFICIENT_FUNDS)
    assert await stock_of(facade, "prod-2") == 50


@pytest.mark.asyncio
async def test_zero_retries_raises_first_failure(repo, subject):
    sleep = SleepRecorder()
    facade = build_facade(repo, subject, fast_payment_settings(retry_attempts=0), sleep=sleep)
    error = InsufficientFundsException("card declined")
    use_stub(facade, StubPayment(error=error, failures=99))
    await facade.carts.add_item("cust-1", "prod-2", 1)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions())

    assert sleep.delays == []
    assert classified_cause(exc.value) is error


@pytest.mark.asyncio
async def test_fraud_is_not_retried(repo, subject, payment_settings):
    sleep = SleepRecorder()
    facade = build_facade(repo, subject, payment_settings, sleep=sleep)
    stub = StubPayment(error=FraudDetectedException(), failures=99)
    use_stub(facade, stub)
    await facade.carts.add_item("cust-1", "prod-2", 1)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions())

    assert len(stub.calls) == 1
    assert sleep.delays == []
    assert has_error_code(exc.value, PaymentCode.FRAUD_DETECTED)
    assert classified_cause(exc.value).code == PaymentCode.FRAUD_DETECTED


@pytest.mark.asyncio
async def test_timeout_is_not_retried(repo, subject):
    sleep = SleepRecorder()
    settings = fast_payment_settings(timeout_seconds=0.05)
    facade = build_facade(repo, subject, settings, sleep=sleep)
    stub = StubPayment(delay=1.0)
    use_stub(facade, stub)
    await facade.carts.add_item("cust-1", "prod-2", 1)

    with pytest.raises(PaymentFailedException) as exc:
        await facade.checkout("cust-1", CheckoutOptions())

    assert has_error_code(exc.value, PaymentCode.TIMEOUT)
    assert len(stub.calls) == 1
    assert sleep.delays == []
    assert await stock_of(facade, "prod-2") == 50


def test_classified_cause_skips_payment_failed_envelopes():
    invalid = InvalidPaymentException("invalid credit card")
    invalid.__cause__ = DomainValidationException("invalid card number", field="card_number")
    part = PaymentFailedException("split part 1 failed")
    part.__cause__ = invalid
    outer = PaymentFailedException.for_stage("payment processing failed", part)
    outer.__cause__ = part

    assert classified_cause(outer) is invalid
    assert classified_cause(PaymentFailedException("no cause")) is None
