from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from typing import List, Optional
from beanie import PydanticObjectId

from app.core.email import send_low_stock_alert
from app.dependencies.auth import get_current_active_user
from app.dependencies.business import get_business
from app.models.business import Business
from app.models.product import ProductStatus
from app.models.user import User
from app.schemas.inventory import StockAdjustmentSchema, StockMovementResponse
from app.schemas.product import (
    ProductCreate,
    ProductFilters,
    ProductResponse,
    ProductUpdate,
)
from app.services import inventory_service, stock_queries

router = APIRouter()


# ==========================================
# PRODUCTS
# ==========================================

@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """
    Add a product. A non-zero opening `stock` is recorded as a
    "purchase" movement with reason "Initial stock".
    """
    return await inventory_service.create_product(business.id, current_user.id, product_data)


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    product_status: Optional[ProductStatus] = Query(default=None, alias="status"),
    low_stock: bool = False,
    search: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    business: Business = Depends(get_business)
):
    filters = ProductFilters(
        category=category,
        status=product_status,
        low_stock=low_stock,
        search=search,
        limit=limit,
        offset=offset,
    )
    return await inventory_service.list_products(business.id, filters)


# ==========================================
# LOW STOCK (declared before /{product_id})
# ==========================================

@router.get("/low-stock", response_model=List[ProductResponse])
async def get_low_stock(
    threshold: Optional[float] = Query(default=None, ge=0),
    business: Business = Depends(get_business)
):
    """Active products whose stock is at or below min_stock (or `threshold`)."""
    return await stock_queries.get_low_stock(business.id, threshold)


@router.post("/low-stock/notify", status_code=status.HTTP_202_ACCEPTED)
async def notify_low_stock(
    background_tasks: BackgroundTasks,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """Email the owner the current low-stock list."""
    products = await stock_queries.get_low_stock(business.id)
    if products:
        background_tasks.add_task(send_low_stock_alert, current_user.email, business.name, products)
    return {"message": "Low-stock alert queued", "products": len(products)}


# ==========================================
# SINGLE PRODUCT
# ==========================================

@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: PydanticObjectId, business: Business = Depends(get_business)):
    return await inventory_service.get_product(product_id, business.id)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: PydanticObjectId,
    update_data: ProductUpdate,
    business: Business = Depends(get_business)
):
    product = await inventory_service.get_product(product_id, business.id)
    return await inventory_service.update_product(product, update_data)


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(product_id: PydanticObjectId, business: Business = Depends(get_business)):
    """Soft delete (status -> discontinued). Refused while stock remains."""
    product = await inventory_service.get_product(product_id, business.id)
    return await inventory_service.delete_product(product)


# ==========================================
# STOCK
# ==========================================

@router.post("/{product_id}/adjust", response_model=StockMovementResponse)
async def adjust_stock(
    product_id: PydanticObjectId,
    data: StockAdjustmentSchema,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """
    Record a stock movement.

    - purchase / return add `quantity`
    - sale / damage / theft remove `quantity` (409 if stock would go negative)
    - adjust sets stock to exactly `quantity`
    """
    product = await inventory_service.get_product(product_id, business.id)
    return await inventory_service.adjust_product_stock(
        product, current_user.id, data.quantity, data.type, data.reason
    )


@router.get("/{product_id}/history", response_model=List[StockMovementResponse])
async def get_stock_history(
    product_id: PydanticObjectId,
    limit: int = Query(default=50, ge=1),
    business: Business = Depends(get_business)
):
    """Ledger entries for this product, newest first."""
    product = await inventory_service.get_product(product_id, business.id)
    return await stock_queries.get_stock_history(product.id, limit)
