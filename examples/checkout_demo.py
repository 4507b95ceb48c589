from __future__ import annotations

import argparse
import asyncio
import json
import sys
from decimal import Decimal

from application.dtos.checkout import CheckoutOptions, SplitPartOption
from core.config import DatabaseSettings, Settings
from core.logging_config import configure_logging
from domain.common.exceptions import BusinessException
from infrastructure.container import Container


SCENARIOS = {
    "instant": (["prod-2"], CheckoutOptions(decorators=["tax", "discount"])),
    "loyalty": (["prod-1"], CheckoutOptions(decorators=["loyalty_points"], loyalty_points=500)),
    "deferred": (["prod-5"], CheckoutOptions(payment_strategy="deferred", installments=3)),
    "split": (
        ["prod-1"],
        CheckoutOptions(
            payment_strategy="split",
            split_parts=[
                SplitPartOption(payment_method="credit_card", amount=Decimal("500")),
                SplitPartOption(payment_method="paypal", amount=Decimal("499.99")),
            ],
        ),
    ),
}


async def run(names: list[str], driver: str) -> int:
    settings = Settings(database=DatabaseSettings(driver=driver, seed=True))
    container = Container(settings)
    await container.startup()
    failures = 0
    try:
        for name in names:
            products, options = SCENARIOS[name]
            for product_id in products:
                await container.carts.add_item("cust-1", product_id, 1)
            try:
                receipt = await container.checkout.checkout("cust-1", options)
            except BusinessException as exc:
                failures += 1
                print(f"[{name}] failed: {exc}")
                await container.carts.clear_cart("cust-1")
                continue
            print(f"[{name}] paid {receipt.total} via {receipt.payment_method}")
            print(json.dumps(
                {
                    "transaction_id": receipt.transaction_id,
                    "subtotal": str(receipt.subtotal),
                    "tax": str(receipt.tax),
                    "discount": str(receipt.discount),
                    "decorators": receipt.applied_decorators,
                },
                indent=2,
            ))
        await container.subject.drain()
        if container.metrics is not None:
            container.metrics.export()
    finally:
        await container.shutdown()
    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description="Run sample checkouts against the seeded store")
    parser.add_argument("scenarios", nargs="*", help=f"any of: {', '.join(SCENARIOS)}")
    parser.add_argument("--driver", choices=["memory", "file", "sqlite"], default="memory")
    args = parser.parse_args()
    unknown = [name for name in args.scenarios if name not in SCENARIOS]
    if unknown:
        parser.error(f"unknown scenario: {unknown[0]}")
    configure_logging("warning")
    failures = asyncio.run(run(args.scenarios or list(SCENARIOS), args.driver))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
