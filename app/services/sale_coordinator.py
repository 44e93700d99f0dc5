"""
Sale lifecycle: completed --void--> voided.

A sale and its stock movements live in different collections and are not
written in one transaction. Whoever writes a sale's movement first claims
the sale (``inventory_sync=syncing``, stamped with ``sync_claimed_at``):

- ``create_sale`` inserts the sale already claimed;
- ``void_sale`` claims it in the same conditional update that flips the
  status;
- ``reconcile_pending`` claims ``pending`` sales, and ``syncing`` ones
  whose claim is older than ``INVENTORY_SYNC_CLAIM_TIMEOUT_SECONDS``.

The claim holder checks the ledger, writes what is missing and releases
the sale as ``synced``. If the ledger write fails the sale still stands
(the customer has paid) and is released as ``pending`` so the caller can
see it and reconciliation can finish the job later.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from beanie import PydanticObjectId, UpdateResponse
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import (
    AccessDenied,
    AppError,
    InsufficientStock,
    ProductNotFound,
    SaleNotCompleted,
    SaleNotFound,
    SaleSyncInProgress,
)
from app.models.product import Product
from app.models.sale import InventorySync, Sale, SaleStatus
from app.models.stock_movement import MovementKind, ReferenceType
from app.schemas.sale import SaleCreate, SaleFilters, SaleUpdate
from app.services import stock_engine
from app.services.stock_queries import has_movement

logger = logging.getLogger(__name__)

SALE_REASON = "Sale transaction"
VOID_REASON = "Sale voided – stock returned"


@dataclass
class ReconcileReport:
    examined: int = 0
    synced: int = 0
    still_pending: int = 0
    skipped: int = 0


def compute_total(quantity: float, unit_price: float) -> float:
    return round(quantity * unit_price, 2)


def _claim_time() -> datetime:
    # MongoDB keeps milliseconds; claims are matched by exact value
    now = datetime.utcnow()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _stale_before(now: datetime) -> datetime:
    return now - timedelta(seconds=settings.INVENTORY_SYNC_CLAIM_TIMEOUT_SECONDS)


# ==========================================
# CREATE
# ==========================================

async def create_sale(
    business_id: PydanticObjectId,
    actor_id: PydanticObjectId,
    data: SaleCreate,
) -> Sale:
    # Business existence/ownership has already been checked by the router dependency
    if data.product_id is not None:
        product = await Product.get(data.product_id)
        if product is None:
            raise ProductNotFound(data.product_id)
        if product.business_id != business_id:
            raise AccessDenied("Access denied: product does not belong to this business")
        # Early rejection; the engine re-checks atomically
        if product.stock < data.quantity:
            raise InsufficientStock(available=product.stock, requested=data.quantity)

    total = compute_total(data.quantity, data.unit_price)
    sale = Sale(
        business_id=business_id,
        product_id=data.product_id,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        quantity=data.quantity,
        unit_price=data.unit_price,
        total_amount=total,
        discount=data.discount,
        tax=data.tax,
        final_amount=round(total - data.discount + data.tax, 2),
        payment_method=data.payment_method,
        payment_status=data.payment_status,
        notes=data.notes,
        status=SaleStatus.COMPLETED,
        inventory_sync=(
            InventorySync.SYNCING if data.product_id is not None else InventorySync.NOT_APPLICABLE
        ),
        sync_claimed_at=_claim_time() if data.product_id is not None else None,
        created_by=actor_id,
    )
    await sale.insert()

    if sale.product_id is not None:
        await _sync_inventory(sale, actor_id)

    return sale


# ==========================================
# READ
# ==========================================

async def get_sale(sale_id: PydanticObjectId, business_id: PydanticObjectId) -> Sale:
    sale = await Sale.get(sale_id)
    if sale is None:
        raise SaleNotFound(sale_id)
    if sale.business_id != business_id:
        raise AccessDenied("Access denied: sale does not belong to this business")
    return sale


async def list_sales(business_id: PydanticObjectId, filters: SaleFilters) -> List[Sale]:
    query = {"business_id": business_id}

    if filters.status:
        query["status"] = filters.status.value
    if filters.payment_method:
        query["payment_method"] = filters.payment_method.value
    if filters.inventory_sync:
        query["inventory_sync"] = filters.inventory_sync.value
    if filters.start_date:
        query["created_at"] = {"$gte": filters.start_date}
    if filters.end_date:
        query.setdefault("created_at", {})["$lte"] = filters.end_date

    return await Sale.find(query).sort(-Sale.created_at, -Sale.id).skip(
        filters.offset
    ).limit(filters.limit).to_list()


# ==========================================
# UPDATE (no stock impact)
# ==========================================

async def update_sale(sale: Sale, data: SaleUpdate) -> Sale:
    if sale.status != SaleStatus.COMPLETED:
        raise SaleNotCompleted(sale.status.value)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return sale

    changes["updated_at"] = datetime.utcnow()
    updated = await Sale.find_one(
        Sale.id == sale.id,
        Sale.status == SaleStatus.COMPLETED,
    ).update({"$set": changes}, response_type=UpdateResponse.NEW_DOCUMENT)
    if updated is None:
        # Voided between our read and write
        raise SaleNotCompleted(SaleStatus.VOIDED.value)
    return updated



# ==========================================
# VOID
# ==========================================

async def void_sale(sale: Sale, actor_id: PydanticObjectId) -> Sale:
    """
    Void a completed sale and give its stock back.
    Voiding twice is an error and never produces a second return movement.
    """
    if sale.status != SaleStatus.COMPLETED:
        raise SaleNotCompleted(sale.status.value)

    now = _claim_time()
    flip = {
        "status": SaleStatus.VOIDED.value,
        "voided_by": actor_id,
        "voided_at": now,
        "updated_at": now,
    }
    # Conditional on status so two concurrent voids cannot both win
    match = {"_id": sale.id, "status": SaleStatus.COMPLETED.value}

    if sale.product_id is not None:
        flip["inventory_sync"] = InventorySync.SYNCING.value
        flip["sync_claimed_at"] = now
        # ...and not while another writer holds a live claim on its stock
        match["$or"] = [
            {"inventory_sync": {"$ne": InventorySync.SYNCING.value}},
            {"sync_claimed_at": {"$lt": _stale_before(now)}},
        ]

    voided = await Sale.find_one(match).update(
        {"$set": flip}, response_type=UpdateResponse.NEW_DOCUMENT
    )
    if voided is None:
        current = await Sale.get(sale.id)
        if current is None:
            raise SaleNotFound(sale.id)
        if current.status != SaleStatus.COMPLETED:
            raise SaleNotCompleted(current.status.value)
        raise SaleSyncInProgress(sale.id)

    logger.info("Sale %s voided by %s", voided.id, actor_id)

    if voided.product_id is not None:
        await _sync_inventory(voided, actor_id)

    return voided


# ==========================================
# INVENTORY SYNC
# ==========================================

async def _missing_movement(sale: Sale) -> Optional[MovementKind]:
    """What the ledger still needs for this sale, judged from the ledger itself."""
    has_sale = await has_movement(sale.id, MovementKind.SALE)

    if sale.status == SaleStatus.COMPLETED:
        return None if has_sale else MovementKind.SALE

    # Voided: stock only needs returning if it was ever taken
    if not has_sale:
        return None
    has_return = await has_movement(sale.id, MovementKind.RETURN)
    return None if has_return else MovementKind.RETURN


async def _release(sale: Sale, state: InventorySync) -> bool:
    """Drop our claim, leaving the sale `synced` or `pending`. False if the claim was lost."""
    try:
        released = await Sale.find_one(
            Sale.id == sale.id,
            Sale.inventory_sync == InventorySync.SYNCING,
            Sale.sync_claimed_at == sale.sync_claimed_at,
        ).update(
            {"$set": {
                "inventory_sync": state.value,
                "sync_claimed_at": None,
                "updated_at": datetime.utcnow(),
            }},
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
    except PyMongoError as exc:
        # Stays "syncing"; reconcile takes it over once the claim is stale
        logger.error("Could not release sale %s as %s: %s", sale.id, state.value, exc)
        return False

    if released is None:
        logger.warning("Claim on sale %s was taken over before release", sale.id)
        return False

    sale.inventory_sync = released.inventory_sync
    sale.sync_claimed_at = None
    sale.updated_at = released.updated_at
    return True


async def _sync_inventory(sale: Sale, actor_id: PydanticObjectId) -> bool:
    """
    Record whatever movement the sale still needs, then release it as synced.
    The caller must hold the claim. Failures are logged and release the sale
    as pending; they are not raised.
    """
    try:
        kind = await _missing_movement(sale)
        if kind is not None:
            reason = SALE_REASON if kind == MovementKind.SALE else VOID_REASON
            await stock_engine.adjust_stock(
                sale.product_id,
                sale.quantity,
                kind,
                reason,
                actor_id,
                reference_id=sale.id,
                reference_type=ReferenceType.SALE,
            )
    except (AppError, PyMongoError) as exc:
        logger.warning(
            "Inventory sync failed for sale %s (status=%s); left pending: %s",
            sale.id, sale.status.value, exc,
        )
        await _release(sale, InventorySync.PENDING)
        return False

    return await _release(sale, InventorySync.SYNCED)


def _reconcilable(stale_before: datetime) -> dict:
    return {"$or": [
        {"inventory_sync": InventorySync.PENDING.value},
        {
            "inventory_sync": InventorySync.SYNCING.value,
            "sync_claimed_at": {"$lt": stale_before},
        },
    ]}


async def _claim_for_reconcile(sale_id: PydanticObjectId, now: datetime) -> Optional[Sale]:
    query = _reconcilable(_stale_before(now))
    query["_id"] = sale_id
    return await Sale.find_one(query).update(
        {"$set": {"inventory_sync": InventorySync.SYNCING.value, "sync_claimed_at": now}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )


async def reconcile_pending(business_id: Optional[PydanticObjectId] = None) -> ReconcileReport:
    """Retry the ledger side of every pending sale, and of abandoned claims."""
    now = _claim_time()
    query = _reconcilable(_stale_before(now))
    if business_id is not None:
        query["business_id"] = business_id

    report = ReconcileReport()
    candidates = await Sale.find(query).sort(+Sale.created_at).to_list()

    for candidate in candidates:
        report.examined += 1
        sale = await _claim_for_reconcile(candidate.id, now)
        if sale is None:
            # Another writer claimed it after our query
            report.skipped += 1
            continue
        if await _sync_inventory(sale, sale.voided_by or sale.created_by):
            report.synced += 1
        else:
            report.still_pending += 1

    logger.info(
        "Reconciled pending sales: examined=%d synced=%d still_pending=%d skipped=%d",
        report.examined, report.synced, report.still_pending, report.skipped,
    )
    return report
