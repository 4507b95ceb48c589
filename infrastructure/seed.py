"""
示例数据 - 五个商品和一个演示客户
"""
from decimal import Decimal

from core.logging_config import get_logger
from domain.common.exceptions import AlreadyExistsException
from domain.store.entity import Address, Customer, Product
from domain.store.repository import StoreRepository


logger = get_logger(__name__)


def sample_products() -> list[Product]:
    return [
        Product(id="prod-1", name="Laptop", description="High-performance laptop",
                price=Decimal("999.99"), sku="LAP-001", stock=10, category="Electronics"),
        Product(id="prod-2", name="Wireless Mouse", description="Ergonomic wireless mouse",
                price=Decimal("29.99"), sku="MOU-001", stock=50, category="Accessories"),
        Product(id="prod-3", name="USB-C Cable", description="High-speed USB-C cable",
                price=Decimal("19.99"), sku="CAB-001", stock=100, category="Accessories"),
        Product(id="prod-4", name="Mechanical Keyboard", description="RGB mechanical keyboard",
                price=Decimal("149.99"), sku="KEY-001", stock=25, category="Accessories"),
        Product(id="prod-5", name="Monitor", description="27-inch 4K monitor",
                price=Decimal("399.99"), sku="MON-001", stock=15, category="Electronics"),
    ]


def sample_customer() -> Customer:
    return Customer(
        id="cust-1",
        email="john.doe@example.com",
        name="John Doe",
        phone="+1234567890",
        loyalty_points=500,
        address=Address(
            street="123 Main St",
            city="San Francisco",
            state="CA",
            postal_code="94105",
            country="USA",
        ),
    )


async def seed_store(repo: StoreRepository) -> int:
    """写入示例数据；已存在的记录跳过。返回新写入的记录数"""
    created = 0
    for product in sample_products():
        try:
            await repo.create_product(product)
            created += 1
        except AlreadyExistsException:
            continue
    try:
        await repo.create_customer(sample_customer())
        created += 1
    except AlreadyExistsException:
        pass
    logger.info("sample_data_seeded", created=created)
    return created
