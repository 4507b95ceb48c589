"""
商品API路由
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_inventory_service
from application.dtos.store import ProductResponseDTO
from application.services.inventory_service import InventoryService
from core.response import Response as ApiResponse, success_response

router = APIRouter(prefix="/products", tags=["商品"])


@router.get("", summary="商品列表", response_model=ApiResponse[list[ProductResponseDTO]])
async def list_products(service: InventoryService = Depends(get_inventory_service)):
    products = await service.list_products()
    return success_response(data=[ProductResponseDTO.model_validate(p) for p in products])


@router.get("/{product_id}", summary="商品详情", response_model=ApiResponse[ProductResponseDTO])
async def get_product(product_id: str, service: InventoryService = Depends(get_inventory_service)):
    product = await service.get_product(product_id)
    return success_response(data=ProductResponseDTO.model_validate(product))
