from datetime import datetime
from typing import List

from beanie import PydanticObjectId

from app.core.errors import AccessDenied, BusinessNotFound
from app.models.business import Business
from app.schemas.business import BusinessCreate, BusinessUpdate


async def create_business(owner_id: PydanticObjectId, data: BusinessCreate) -> Business:
    business = Business(owner_id=owner_id, **data.model_dump())
    await business.insert()
    return business


async def list_businesses(owner_id: PydanticObjectId) -> List[Business]:
    return await Business.find(Business.owner_id == owner_id).sort(+Business.created_at).to_list()


async def get_owned_business(business_id: PydanticObjectId, user_id: PydanticObjectId) -> Business:
    """The 'business exists and is owned by user X' check every scoped route runs first."""
    business = await Business.get(business_id)
    if business is None:
        raise BusinessNotFound(business_id)
    if business.owner_id != user_id:
        raise AccessDenied("Access denied: business does not belong to this user")
    return business


async def update_business(business: Business, data: BusinessUpdate) -> Business:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return business
    changes["updated_at"] = datetime.utcnow()
    await business.set(changes)
    return business
