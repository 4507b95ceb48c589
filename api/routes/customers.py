"""
客户API路由
"""
from fastapi import APIRouter, Depends, Query

from api.dependencies import get_customer_service
from application.dtos.store import CustomerCreateDTO, CustomerResponseDTO
from application.services.customer_service import CustomerService
from core.config import settings
from core.response import Response as ApiResponse, success_response
from domain.store.entity import Address

router = APIRouter(prefix="/customers", tags=["客户"])


@router.post("", summary="注册客户", status_code=201, response_model=ApiResponse[CustomerResponseDTO])
async def register_customer(
    body: CustomerCreateDTO,
    service: CustomerService = Depends(get_customer_service),
):
    """
    注册新客户

    - **email**: 邮箱地址（唯一）
    - **name**: 姓名
    - **phone**: 手机号（可选，10-15位数字）
    - **address.state**: 用于计算销售税的地区代码
    """
    customer = await service.register_customer(
        email=str(body.email),
        name=body.name,
        phone=body.phone,
        address=Address(**body.address.model_dump()),
        loyalty_points=body.loyalty_points,
    )
    return success_response(data=CustomerResponseDTO.model_validate(customer), message="客户注册成功")


@router.get("", summary="客户列表", response_model=ApiResponse[list[CustomerResponseDTO]])
async def list_customers(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    service: CustomerService = Depends(get_customer_service),
):
    customers = await service.list_customers(limit=limit, offset=offset)
    return success_response(data=[CustomerResponseDTO.model_validate(c) for c in customers])


@router.get("/by-email", summary="按邮箱查询客户", response_model=ApiResponse[CustomerResponseDTO])
async def get_customer_by_email(
    email: str = Query(..., min_length=3),
    service: CustomerService = Depends(get_customer_service),
):
    customer = await service.get_customer_by_email(email)
    return success_response(data=CustomerResponseDTO.model_validate(customer))


@router.get("/{customer_id}", summary="客户详情", response_model=ApiResponse[CustomerResponseDTO])
async def get_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    customer = await service.get_customer(customer_id)
    return success_response(data=CustomerResponseDTO.model_validate(customer))
