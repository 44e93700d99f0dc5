import logging
import re
from datetime import datetime
from typing import List

from beanie import PydanticObjectId, UpdateResponse

from app.core.errors import (
    AccessDenied,
    InvalidPricing,
    InvalidStockThresholds,
    ProductHasStock,
    ProductNotFound,
)
from app.models.product import Product, ProductStatus
from app.models.stock_movement import MovementKind, StockMovement
from app.schemas.product import ProductCreate, ProductFilters, ProductUpdate
from app.services import stock_engine

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Initial stock"


def _check_pricing(cost_price: float, selling_price: float) -> None:
    if selling_price <= cost_price:
        raise InvalidPricing()


def _check_thresholds(min_stock: float, max_stock: float) -> None:
    if min_stock > 0 and max_stock > 0 and min_stock >= max_stock:
        raise InvalidStockThresholds()


async def create_product(
    business_id: PydanticObjectId,
    actor_id: PydanticObjectId,
    data: ProductCreate,
) -> Product:
    _check_pricing(data.cost_price, data.selling_price)
    _check_thresholds(data.min_stock, data.max_stock)

    product = Product(
        business_id=business_id,
        created_by=actor_id,
        **data.model_dump(exclude={"stock"}),
    )
    await product.insert()

    # Opening balance goes through the ledger like any other purchase
    if data.stock > 0:
        movement = await stock_engine.adjust_stock(
            product.id, data.stock, MovementKind.PURCHASE, INITIAL_STOCK_REASON, actor_id,
        )
        product.stock = movement.new

    return product


async def get_product(product_id: PydanticObjectId, business_id: PydanticObjectId) -> Product:
    product = await Product.get(product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if product.business_id != business_id:
        raise AccessDenied("Access denied: product does not belong to this business")
    return product


async def list_products(business_id: PydanticObjectId, filters: ProductFilters) -> List[Product]:
    query = {"business_id": business_id}

    if filters.category:
        query["category"] = filters.category
    if filters.status:
        query["status"] = filters.status.value
    if filters.search:
        pattern = re.escape(filters.search)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"sku": {"$regex": pattern, "$options": "i"}},
            {"barcode": {"$regex": pattern, "$options": "i"}},
        ]

    products = await Product.find(query).sort(+Product.name, +Product.id).to_list()

    if filters.low_stock:
        products = [p for p in products if p.stock <= p.min_stock]

    return products[filters.offset:filters.offset + filters.limit]


async def update_product(product: Product, data: ProductUpdate) -> Product:
    """Metadata edit. Never touches stock. Explicit nulls mean "leave as is"."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    _check_pricing(
        changes.get("cost_price", product.cost_price),
        changes.get("selling_price", product.selling_price),
    )
    _check_thresholds(
        changes.get("min_stock", product.min_stock),
        changes.get("max_stock", product.max_stock),
    )

    if not changes:
        return product

    changes["updated_at"] = datetime.utcnow()
    # $set only the edited fields so a concurrent stock movement is never overwritten
    await product.set(changes)
    return product


async def delete_product(product: Product) -> Product:
    """Soft delete: discontinued, and only once the shelf is empty."""
    if product.stock > 0:
        raise ProductHasStock(product.stock)

    # Only while stock is still zero
    discontinued = await Product.find_one(
        Product.id == product.id,
        Product.stock == 0,
    ).update(
        {"$set": {"status": ProductStatus.DISCONTINUED.value, "updated_at": datetime.utcnow()}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if discontinued is None:
        current = await Product.get(product.id)
        raise ProductHasStock(current.stock if current else product.stock)

    logger.info("Product %s discontinued", discontinued.id)
    return discontinued


async def adjust_product_stock(
    product: Product,
    actor_id: PydanticObjectId,
    quantity: float,
    kind: MovementKind,
    reason: str,
) -> StockMovement:
    """Manual adjustment from the inventory screen; no originating transaction."""
    return await stock_engine.adjust_stock(product.id, quantity, kind, reason, actor_id)
