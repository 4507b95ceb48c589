"""
API依赖项 - 从应用容器中取出服务
"""
from fastapi import Depends, HTTPException, Request, status

from application.services.cart_service import CartService
from application.services.checkout_service import CheckoutFacade
from application.services.customer_service import CustomerService
from application.services.debit_service import DebitService
from application.services.inventory_service import InventoryService
from application.services.transaction_service import TransactionService
from infrastructure.container import Container
from infrastructure.notifications import MetricsObserver


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="应用尚未初始化",
        )
    return container


async def get_inventory_service(container: Container = Depends(get_container)) -> InventoryService:
    return container.inventory


async def get_customer_service(container: Container = Depends(get_container)) -> CustomerService:
    return container.customers


async def get_cart_service(container: Container = Depends(get_container)) -> CartService:
    return container.carts


async def get_transaction_service(container: Container = Depends(get_container)) -> TransactionService:
    return container.transactions


async def get_checkout_facade(container: Container = Depends(get_container)) -> CheckoutFacade:
    return container.checkout


async def get_debit_service(container: Container = Depends(get_container)) -> DebitService:
    return container.debit


async def get_metrics_observer(container: Container = Depends(get_container)) -> MetricsObserver:
    if container.metrics is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="指标收集未启用")
    return container.metrics
