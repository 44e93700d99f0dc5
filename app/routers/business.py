from fastapi import APIRouter, Depends, status
from typing import List

from app.dependencies.auth import get_current_active_user
from app.dependencies.business import get_business
from app.models.business import Business
from app.models.user import User
from app.schemas.business import BusinessCreate, BusinessUpdate, BusinessResponse
from app.services import business_service

router = APIRouter()


@router.post("", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
async def create_business(
    business_data: BusinessCreate,
    current_user: User = Depends(get_current_active_user)
):
    return await business_service.create_business(current_user.id, business_data)


@router.get("", response_model=List[BusinessResponse])
async def list_businesses(current_user: User = Depends(get_current_active_user)):
    return await business_service.list_businesses(current_user.id)


@router.get("/{business_id}", response_model=BusinessResponse)
async def get_business_details(business: Business = Depends(get_business)):
    return business


@router.patch("/{business_id}", response_model=BusinessResponse)
async def update_business(
    update_data: BusinessUpdate,
    business: Business = Depends(get_business)
):
    return await business_service.update_business(business, update_data)
