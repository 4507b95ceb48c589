"""
结账API路由

Keep this thin: option parsing lives in CheckoutOptions, orchestration in
CheckoutFacade.
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_checkout_facade, get_debit_service
from application.dtos.checkout import CheckoutOptions, DebitRequest, DebitResult
from application.dtos.store import ReceiptResponseDTO
from application.services.checkout_service import CheckoutFacade
from application.services.debit_service import DebitService
from core.response import Response as ApiResponse, success_response

router = APIRouter(prefix="/customers/{customer_id}", tags=["结账"])


@router.post("/checkout", summary="结账", response_model=ApiResponse[ReceiptResponseDTO])
async def checkout(
    customer_id: str,
    options: CheckoutOptions,
    facade: CheckoutFacade = Depends(get_checkout_facade),
):
    """
    对客户当前购物车结账

    - **payment_method**: credit_card / paypal / crypto
    - **payment_strategy**: instant / deferred / split
    - **decorators**: discount, tax, cashback, fraud_detection, loyalty_points（按顺序由外向内）
    - **split_parts**: split 策略下每一部分的支付方式与金额
    """
    receipt = await facade.checkout(customer_id, options)
    return success_response(data=ReceiptResponseDTO.from_entity(receipt), message="支付成功")


@router.post("/debit", summary="外币余额扣款", response_model=ApiResponse[DebitResult])
async def debit(
    customer_id: str,
    body: DebitRequest,
    service: DebitService = Depends(get_debit_service),
):
    result = await service.debit(customer_id, body)
    return success_response(data=result, message="扣款成功")
