"""
Stock adjustment engine.

The only code path allowed to change ``Product.stock``. Each successful call
performs two writes that belong together:

1. a conditional update of the product's stock, guarded by the value read
   a moment earlier (``stock == previous``), retried when another writer got
   there first;
2. one append to ``stock_movements`` whose ``previous``/``new`` are exactly
   the values that update swapped.

If the ledger append fails the stock is swapped back before the error is
raised, so the ledger invariant ``product.stock == latest_movement.new``
survives a partial failure.

Direction policy:

    purchase, return        -> stock + quantity
    sale, damage, theft     -> stock - quantity   (never below zero)
    adjust                  -> stock = quantity   (ledger stores the delta)

Ownership and authorization are the caller's job.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from beanie import PydanticObjectId, UpdateResponse
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import (
    InsufficientStock,
    InvalidMovementKind,
    InvalidQuantity,
    ProductNotFound,
    ReasonRequired,
    StockUpdateConflict,
    StorageError,
)
from app.models.product import Product
from app.models.stock_movement import MovementKind, ReferenceType, StockMovement

logger = logging.getLogger(__name__)

INCREASING_KINDS = frozenset({MovementKind.PURCHASE, MovementKind.RETURN})
DECREASING_KINDS = frozenset({MovementKind.SALE, MovementKind.DAMAGE, MovementKind.THEFT})

# Stock is fractional (kg, litres); keep it to a fixed precision so float
# noise never leaks into the ledger.
QUANTITY_PRECISION = 6


def round_quantity(value: float) -> float:
    return round(value, QUANTITY_PRECISION)


def parse_movement_kind(kind: Union[MovementKind, str]) -> MovementKind:
    if isinstance(kind, MovementKind):
        return kind
    try:
        return MovementKind(kind)
    except ValueError:
        raise InvalidMovementKind(kind)


def signed_quantity(kind: MovementKind, quantity: float) -> float:
    """Relative kinds only. ADJUST is absolute and has no fixed sign."""
    if kind in INCREASING_KINDS:
        return quantity
    if kind in DECREASING_KINDS:
        return -quantity
    raise InvalidMovementKind(kind)


def _require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ReasonRequired()
    return reason.strip()


async def _load_product(product_id: PydanticObjectId) -> Product:
    product = await Product.get(product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


async def _swap_stock(product_id, expected: float, new_stock: float) -> Optional[Product]:
    """Set stock to new_stock only if it still equals expected. None on a lost race."""
    return await Product.find_one(
        Product.id == product_id,
        Product.stock == expected,
    ).update(
        {"$set": {"stock": new_stock, "updated_at": datetime.utcnow()}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )


async def _apply(
    product_id: PydanticObjectId,
    kind: MovementKind,
    reason: str,
    actor_id: PydanticObjectId,
    reference_id: Optional[PydanticObjectId],
    reference_type: Optional[ReferenceType],
    delta: Optional[float] = None,
    target: Optional[float] = None,
) -> StockMovement:
    attempts = max(1, settings.STOCK_UPDATE_MAX_RETRIES)

    for attempt in range(1, attempts + 1):
        product = await _load_product(product_id)
        previous = product.stock

        if target is not None:
            quantity = round_quantity(target - previous)
        else:
            quantity = delta
        new_stock = round_quantity(previous + quantity)

        if new_stock < 0:
            # Nothing has been written yet
            raise InsufficientStock(available=previous, requested=-quantity)

        swapped = await _swap_stock(product.id, previous, new_stock)
        if swapped is None:
            logger.debug(
                "Stock of product %s changed under us (attempt %d/%d), retrying",
                product.id, attempt, attempts,
            )
            continue

        movement = StockMovement(
            product_id=product.id,
            business_id=product.business_id,
            kind=kind,
            quantity=quantity,
            previous=previous,
            new=new_stock,
            reason=reason,
            reference_id=reference_id,
            reference_type=reference_type,
            created_by=actor_id,
        )
        try:
            await movement.insert()
        except PyMongoError as exc:
            await _undo_swap(product.id, new_stock, previous)
            raise StorageError(f"Failed to record stock movement: {exc}") from exc

        logger.info(
            "Stock movement %s product=%s kind=%s qty=%+g %g -> %g ref=%s",
            movement.id, product.id, kind.value, quantity, previous, new_stock, reference_id,
        )
        return movement

    raise StockUpdateConflict(product_id, attempts)


async def _undo_swap(product_id, current: float, previous: float) -> None:
    try:
        reverted = await _swap_stock(product_id, current, previous)
    except PyMongoError:
        reverted = None
    if reverted is None:
        logger.error(
            "Could not revert stock of product %s from %g to %g after ledger write failure; "
            "stock and ledger now disagree",
            product_id, current, previous,
        )


async def adjust_stock(
    product_id: PydanticObjectId,
    quantity: float,
    kind: Union[MovementKind, str],
    reason: str,
    actor_id: PydanticObjectId,
    reference_id: Optional[PydanticObjectId] = None,
    reference_type: Optional[ReferenceType] = None,
) -> StockMovement:
    """
    Apply one stock movement and return the ledger entry it produced.

    `quantity` is always a positive magnitude; the direction comes from `kind`.
    For ADJUST it is the absolute stock level to set (see set_absolute_stock).

    Raises InvalidMovementKind, InvalidQuantity, ReasonRequired,
    ProductNotFound, InsufficientStock, StockUpdateConflict, StorageError.
    """
    kind = parse_movement_kind(kind)
    reason = _require_reason(reason)
    if quantity is None or quantity <= 0:
        raise InvalidQuantity("Quantity must be greater than 0")

    if kind == MovementKind.ADJUST:
        return await set_absolute_stock(
            product_id, quantity, reason, actor_id,
            reference_id=reference_id, reference_type=reference_type,
        )

    return await _apply(
        product_id, kind, reason, actor_id, reference_id, reference_type,
        delta=signed_quantity(kind, round_quantity(quantity)),
    )


async def set_absolute_stock(
    product_id: PydanticObjectId,
    target: float,
    reason: str,
    actor_id: PydanticObjectId,
    reference_id: Optional[PydanticObjectId] = None,
    reference_type: Optional[ReferenceType] = None,
) -> StockMovement:
    """Set stock to `target` (a stock count, zero allowed). Records an ADJUST movement of the delta."""
    reason = _require_reason(reason)
    if target is None or target < 0:
        raise InvalidQuantity("Target stock cannot be negative")

    return await _apply(
        product_id, MovementKind.ADJUST, reason, actor_id, reference_id, reference_type,
        target=round_quantity(target),
    )
