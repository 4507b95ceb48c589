"""
交易API路由
"""
from fastapi import APIRouter, Depends, Query

from api.dependencies import get_transaction_service
from application.dtos.store import RefundRequestDTO, TransactionResponseDTO
from application.services.transaction_service import TransactionService
from core.config import settings
from core.response import Response as ApiResponse, success_response

router = APIRouter(tags=["交易"])


@router.get(
    "/customers/{customer_id}/transactions",
    summary="客户交易记录",
    response_model=ApiResponse[list[TransactionResponseDTO]],
)
async def list_customer_transactions(
    customer_id: str,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    service: TransactionService = Depends(get_transaction_service),
):
    transactions = await service.list_customer_transactions(customer_id, limit=limit, offset=offset)
    return success_response(data=[TransactionResponseDTO.from_entity(t) for t in transactions])


@router.get(
    "/transactions/{transaction_id}",
    summary="交易详情",
    response_model=ApiResponse[TransactionResponseDTO],
)
async def get_transaction(
    transaction_id: str,
    service: TransactionService = Depends(get_transaction_service),
):
    transaction = await service.get_transaction(transaction_id)
    return success_response(data=TransactionResponseDTO.from_entity(transaction))


@router.post(
    "/transactions/{transaction_id}/refund",
    summary="退款",
    response_model=ApiResponse[TransactionResponseDTO],
)
async def refund_transaction(
    transaction_id: str,
    body: RefundRequestDTO | None = None,
    service: TransactionService = Depends(get_transaction_service),
):
    reason = body.reason if body is not None else None
    transaction = await service.refund_transaction(transaction_id, reason)
    return success_response(data=TransactionResponseDTO.from_entity(transaction), message="退款成功")
