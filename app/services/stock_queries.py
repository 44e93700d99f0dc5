from typing import List, Optional

from beanie import PydanticObjectId

from app.core.config import settings
from app.models.product import Product, ProductStatus
from app.models.stock_movement import MovementKind, StockMovement


async def get_low_stock(
    business_id: PydanticObjectId,
    threshold: Optional[float] = None,
) -> List[Product]:
    """
    Active products at or below their minimum stock (or below `threshold`
    when one is given). Sorted by name then id so a fixed snapshot always
    gives the same list.
    """
    products = await Product.find(
        Product.business_id == business_id,
        Product.status == ProductStatus.ACTIVE,
    ).sort(+Product.name, +Product.id).to_list()

    if threshold is not None:
        return [p for p in products if p.stock <= threshold]
    return [p for p in products if p.stock <= p.min_stock]


def clamp_history_limit(limit: Optional[int]) -> int:
    if not limit or limit <= 0:
        return settings.STOCK_HISTORY_DEFAULT_LIMIT
    return min(limit, settings.STOCK_HISTORY_MAX_LIMIT)


async def get_stock_history(
    product_id: PydanticObjectId,
    limit: Optional[int] = None,
) -> List[StockMovement]:
    """Most recent movements for a product, newest first."""
    return await StockMovement.find(
        StockMovement.product_id == product_id,
    ).sort(-StockMovement.created_at, -StockMovement.id).limit(
        clamp_history_limit(limit)
    ).to_list()


async def get_movements_for_reference(reference_id: PydanticObjectId) -> List[StockMovement]:
    """All movements a sale/expense caused, oldest first."""
    return await StockMovement.find(
        StockMovement.reference_id == reference_id,
    ).sort(+StockMovement.created_at, +StockMovement.id).to_list()


async def has_movement(reference_id: PydanticObjectId, kind: MovementKind) -> bool:
    movement = await StockMovement.find_one(
        StockMovement.reference_id == reference_id,
        StockMovement.kind == kind,
    )
    return movement is not None
