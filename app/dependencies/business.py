from fastapi import Depends
from beanie import PydanticObjectId

from app.dependencies.auth import get_current_active_user
from app.models.business import Business
from app.models.user import User
from app.services.business_service import get_owned_business


async def get_business(
    business_id: PydanticObjectId,
    current_user: User = Depends(get_current_active_user),
) -> Business:
    """Resolves the {business_id} path parameter to a business the caller owns."""
    return await get_owned_business(business_id, current_user.id)
