"""Contract tests shared by every StoreRepository backend."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.common.exceptions import AlreadyExistsException, NotFoundException
from domain.payment.entity import Transaction, TransactionStatus
from domain.store.entity import Cart, Customer, new_id
from infrastructure.database import build_engine, build_session_factory, create_tables, sqlite_url
from infrastructure.repositories.file_repository import FileStoreRepository
from infrastructure.repositories.memory_repository import MemoryStoreRepository
from infrastructure.repositories.sqlalchemy_repository import SQLAlchemyStoreRepository
from infrastructure.seed import seed_store


@pytest.fixture(params=["memory", "file", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        repository = MemoryStoreRepository()
    elif request.param == "file":
        repository = FileStoreRepository(str(tmp_path / "store.json"))
    else:
        engine = build_engine(sqlite_url(":memory:"))
        await create_tables(engine)
        repository = SQLAlchemyStoreRepository(build_session_factory(engine), engine)
    await seed_store(repository)
    yield repository
    await repository.close()


def transaction(customer_id="cust-1", created_at=None, **kwargs) -> Transaction:
    return Transaction(
        id=new_id(),
        customer_id=customer_id,
        amount=Decimal("10.50"),
        payment_method="credit_card",
        created_at=created_at or datetime.now(timezone.utc),
        **kwargs,
    )


async def test_seeded_catalog(store):
    products = await store.list_products()
    assert [p.id for p in products] == ["prod-1", "prod-2", "prod-3", "prod-4", "prod-5"]
    laptop = await store.get_product("prod-1")
    assert laptop.price == Decimal("999.99")
    assert laptop.stock == 10
    assert await seed_store(store) == 0


async def test_customer_lookup_and_uniqueness(store):
    customer = await store.get_customer_by_email("john.doe@example.com")
    assert customer.id == "cust-1"
    assert customer.address.state == "CA"

    with pytest.raises(AlreadyExistsException):
        await store.create_customer(Customer(id=new_id(), email="john.doe@example.com", name="Copy"))
    with pytest.raises(NotFoundException):
        await store.get_customer("missing")
    with pytest.raises(NotFoundException):
        await store.get_customer_by_email("nobody@example.com")


async def test_update_customer_and_product(store):
    customer = await store.get_customer("cust-1")
    customer.loyalty_points = 42
    await store.update_customer(customer)
    assert (await store.get_customer("cust-1")).loyalty_points == 42

    product = await store.get_product("prod-2")
    product.stock = 7
    await store.update_product(product)
    assert (await store.get_product("prod-2")).stock == 7


async def test_returned_entities_are_detached(store):
    product = await store.get_product("prod-3")
    product.stock = 0
    assert (await store.get_product("prod-3")).stock == 100


async def test_cart_items_are_replaced_on_update(store):
    cart = await store.create_cart(Cart(id=new_id(), customer_id="cust-1"))
    cart.add_item(await store.get_product("prod-1"), 1)
    cart.add_item(await store.get_product("prod-2"), 3)
    await store.update_cart(cart)

    loaded = await store.get_cart_by_customer("cust-1")
    assert loaded.id == cart.id
    assert [(i.product_id, i.quantity) for i in loaded.items] == [("prod-1", 1), ("prod-2", 3)]
    assert loaded.total() == Decimal("1089.96")

    loaded.remove_item("prod-1")
    await store.update_cart(loaded)
    assert [i.product_id for i in (await store.get_cart(cart.id)).items] == ["prod-2"]

    with pytest.raises(NotFoundException):
        await store.get_cart_by_customer("cust-unknown")


async def test_transactions_newest_first_with_paging(store):
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    created = []
    for minutes in range(3):
        created.append(await store.create_transaction(transaction(created_at=base + timedelta(minutes=minutes))))
    await store.create_transaction(transaction(customer_id="cust-2"))

    listed = await store.list_transactions_by_customer("cust-1", limit=10)
    assert [t.id for t in listed] == [t.id for t in reversed(created)]
    page = await store.list_transactions_by_customer("cust-1", limit=1, offset=1)
    assert [t.id for t in page] == [created[1].id]


async def test_transaction_update_round_trip(store):
    tx = await store.create_transaction(transaction(metadata={"strategy": "instant"}))
    tx.mark_processing()
    tx.mark_completed(Decimal("9.99"))
    tx.payment_details = {"last_4_digits": "****0366"}
    await store.update_transaction(tx)

    loaded = await store.get_transaction(tx.id)
    assert loaded.status is TransactionStatus.COMPLETED
    assert loaded.amount == Decimal("9.99")
    assert loaded.payment_details == {"last_4_digits": "****0366"}
    assert loaded.metadata == {"strategy": "instant"}
    assert loaded.processed_at is not None

    with pytest.raises(AlreadyExistsException):
        await store.create_transaction(loaded)
    with pytest.raises(NotFoundException):
        await store.get_transaction("missing")


async def test_file_store_survives_reload(tmp_path):
    path = tmp_path / "store.json"
    first = FileStoreRepository(str(path))
    await seed_store(first)
    product = await first.get_product("prod-4")
    product.stock = 3
    await first.update_product(product)
    tx = await first.create_transaction(transaction())

    second = FileStoreRepository(str(path))
    assert (await second.get_product("prod-4")).stock == 3
    assert (await second.get_product("prod-4")).price == Decimal("149.99")
    assert (await second.get_transaction(tx.id)).amount == Decimal("10.50")
    assert (await second.get_customer("cust-1")).email == "john.doe@example.com"
    assert not path.with_suffix(".json.tmp").exists()
