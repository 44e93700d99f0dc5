import asyncio
import logging

from app.core.database import init_db
from app.core.log_config import configure_logging
from app.core.security import get_password_hash
from app.models.user import User
from app.schemas.business import BusinessCreate
from app.schemas.product import ProductCreate
from app.services import business_service, inventory_service

logger = logging.getLogger("seed")

DEMO_EMAIL = "owner@shopops.dev"
DEMO_PASSWORD = "shopops123"

DEMO_PRODUCTS = [
    ProductCreate(name="Rice 50kg", sku="RICE-50", unit="bag", cost_price=40.0, selling_price=48.0,
                  stock=20, min_stock=5, max_stock=100),
    ProductCreate(name="Vegetable Oil 5L", sku="OIL-5L", unit="bottle", cost_price=8.5, selling_price=11.0,
                  stock=3, min_stock=6, max_stock=60),
    ProductCreate(name="Sugar", sku="SUGAR-KG", unit="kg", category="groceries",
                  cost_price=1.2, selling_price=1.6, stock=12.5, min_stock=10),
]


async def seed_data():
    await init_db()

    # 1. Demo owner (recreated on every run)
    existing = await User.find_one(User.email == DEMO_EMAIL)
    if existing:
        logger.warning("Demo user '%s' already exists; re-creating it", DEMO_EMAIL)
        await existing.delete()

    owner = User(
        email=DEMO_EMAIL,
        first_name="Demo",
        last_name="Owner",
        hashed_password=get_password_hash(DEMO_PASSWORD),
    )
    await owner.insert()

    # 2. Business + catalogue; opening stock lands in the ledger as purchases
    business = await business_service.create_business(
        owner.id, BusinessCreate(name="Corner Shop", business_type="retail")
    )
    for product_data in DEMO_PRODUCTS:
        product = await inventory_service.create_product(business.id, owner.id, product_data)
        logger.info("Created product %s (stock %g)", product.name, product.stock)

    logger.info("Seed complete. Login: %s / %s  business_id=%s", DEMO_EMAIL, DEMO_PASSWORD, business.id)

if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_data())
