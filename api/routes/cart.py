"""
购物车API路由
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_cart_service
from application.dtos.store import AddCartItemDTO, CartResponseDTO, UpdateQuantityDTO
from application.services.cart_service import CartService
from core.response import Response as ApiResponse, success_response

router = APIRouter(prefix="/customers/{customer_id}/cart", tags=["购物车"])


@router.get("", summary="查看购物车", response_model=ApiResponse[CartResponseDTO])
async def get_cart(customer_id: str, service: CartService = Depends(get_cart_service)):
    cart = await service.get_or_create_cart(customer_id)
    return success_response(data=CartResponseDTO.from_entity(cart))


@router.post("/items", summary="添加商品", response_model=ApiResponse[CartResponseDTO])
async def add_item(
    customer_id: str,
    body: AddCartItemDTO,
    service: CartService = Depends(get_cart_service),
):
    cart = await service.add_item(customer_id, body.product_id, body.quantity)
    return success_response(data=CartResponseDTO.from_entity(cart), message="已加入购物车")


@router.patch("/items/{product_id}", summary="修改数量", response_model=ApiResponse[CartResponseDTO])
async def update_quantity(
    customer_id: str,
    product_id: str,
    body: UpdateQuantityDTO,
    service: CartService = Depends(get_cart_service),
):
    cart = await service.update_quantity(customer_id, product_id, body.quantity)
    return success_response(data=CartResponseDTO.from_entity(cart))


@router.delete("/items/{product_id}", summary="移除商品", response_model=ApiResponse[CartResponseDTO])
async def remove_item(customer_id: str, product_id: str, service: CartService = Depends(get_cart_service)):
    cart = await service.remove_item(customer_id, product_id)
    return success_response(data=CartResponseDTO.from_entity(cart))


@router.delete("", summary="清空购物车", response_model=ApiResponse[CartResponseDTO])
async def clear_cart(customer_id: str, service: CartService = Depends(get_cart_service)):
    cart = await service.clear_cart(customer_id)
    return success_response(data=CartResponseDTO.from_entity(cart), message="购物车已清空")
