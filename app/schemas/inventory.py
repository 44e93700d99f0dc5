from pydantic import AliasChoices, BaseModel, Field
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime
from app.models.stock_movement import MovementKind, ReferenceType


# --- ADJUSTMENT SCHEMA ---
# Used by: POST /businesses/{id}/inventory/products/{pid}/adjust
class StockAdjustmentSchema(BaseModel):
    # For "adjust" this is the absolute stock level to set, not a delta
    quantity: float = Field(..., gt=0, description="Magnitude of the change. Must be positive.")
    type: MovementKind
    reason: str = Field(..., min_length=1)


class StockMovementResponse(BaseModel):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    product_id: PydanticObjectId
    business_id: PydanticObjectId
    kind: MovementKind
    quantity: float
    previous: float
    new: float
    reason: str
    reference_id: Optional[PydanticObjectId] = None
    reference_type: Optional[ReferenceType] = None
    created_by: PydanticObjectId
    created_at: datetime

    class Config:
        from_attributes = True
