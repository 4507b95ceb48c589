"""
支付指标API路由
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_metrics_observer
from application.dtos.store import MetricsResponseDTO
from core.response import Response as ApiResponse, success_response
from infrastructure.notifications import MetricsObserver

router = APIRouter(prefix="/metrics", tags=["指标"])


def _to_dto(observer: MetricsObserver) -> MetricsResponseDTO:
    snapshot = observer.get_metrics()
    return MetricsResponseDTO(
        success_count=snapshot.success_count,
        failure_count=snapshot.failure_count,
        refund_count=snapshot.refund_count,
        success_rate=round(snapshot.success_rate, 2),
        total_amount=snapshot.total_amount,
        payment_method_counts=snapshot.payment_method_counts,
    )


@router.get("", summary="支付指标", response_model=ApiResponse[MetricsResponseDTO])
async def get_metrics(observer: MetricsObserver = Depends(get_metrics_observer)):
    return success_response(data=_to_dto(observer))


@router.post("/reset", summary="重置指标", response_model=ApiResponse[MetricsResponseDTO])
async def reset_metrics(observer: MetricsObserver = Depends(get_metrics_observer)):
    observer.reset()
    return success_response(data=_to_dto(observer), message="指标已重置")
