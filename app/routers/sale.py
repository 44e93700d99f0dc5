from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import datetime
from beanie import PydanticObjectId

from app.dependencies.auth import get_current_active_user
from app.dependencies.business import get_business
from app.models.business import Business
from app.models.sale import InventorySync, PaymentMethod, SaleStatus
from app.models.user import User
from app.schemas.inventory import StockMovementResponse
from app.schemas.sale import (
    ReconcileReportResponse,
    SaleCreate,
    SaleFilters,
    SaleResponse,
    SaleUpdate,
)
from app.services import sale_coordinator, stock_queries

router = APIRouter()


# ==========================================
# 1. CREATE SALE
# ==========================================

@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    sale_data: SaleCreate,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """
    Record a sale. If a product is linked its stock is decremented.

    The sale is kept even if the stock update fails afterwards; the
    response then has `inventory_sync: "pending"` and the reconcile job
    finishes it.
    """
    return await sale_coordinator.create_sale(business.id, current_user.id, sale_data)


# ==========================================
# 2. LIST SALES
# ==========================================

@router.get("", response_model=List[SaleResponse])
async def list_sales(
    sale_status: Optional[SaleStatus] = Query(default=None, alias="status"),
    payment_method: Optional[PaymentMethod] = None,
    inventory_sync: Optional[InventorySync] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    business: Business = Depends(get_business)
):
    filters = SaleFilters(
        status=sale_status,
        payment_method=payment_method,
        inventory_sync=inventory_sync,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return await sale_coordinator.list_sales(business.id, filters)


# ==========================================
# 3. RECONCILE PENDING INVENTORY
# ==========================================

@router.post("/reconcile", response_model=ReconcileReportResponse)
async def reconcile_sales(business: Business = Depends(get_business)):
    """Retry the stock side of every sale still marked pending."""
    report = await sale_coordinator.reconcile_pending(business.id)
    return ReconcileReportResponse(
        examined=report.examined,
        synced=report.synced,
        still_pending=report.still_pending,
        skipped=report.skipped,
    )


# ==========================================
# 4. SINGLE SALE
# ==========================================

@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(sale_id: PydanticObjectId, business: Business = Depends(get_business)):
    return await sale_coordinator.get_sale(sale_id, business.id)


@router.patch("/{sale_id}", response_model=SaleResponse)
async def update_sale(
    sale_id: PydanticObjectId,
    update_data: SaleUpdate,
    business: Business = Depends(get_business)
):
    """Edit notes, customer details or payment status. Voided sales are frozen."""
    sale = await sale_coordinator.get_sale(sale_id, business.id)
    return await sale_coordinator.update_sale(sale, update_data)


@router.delete("/{sale_id}", response_model=SaleResponse)
async def void_sale(
    sale_id: PydanticObjectId,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """Void a sale and return its stock. Voiding twice, or while its stock is mid-update, returns 409."""
    sale = await sale_coordinator.get_sale(sale_id, business.id)
    return await sale_coordinator.void_sale(sale, current_user.id)


@router.get("/{sale_id}/movements", response_model=List[StockMovementResponse])
async def get_sale_movements(sale_id: PydanticObjectId, business: Business = Depends(get_business)):
    """Stock movements caused by this sale (the sale and, once voided, the return)."""
    sale = await sale_coordinator.get_sale(sale_id, business.id)
    return await stock_queries.get_movements_for_reference(sale.id)
