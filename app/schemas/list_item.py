from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime

from app.schemas.product import ProductResponse
from app.utils.validators import normalize_unit_label


class SaleUnitQuantityResponse(BaseModel):
    id: int
    sale_unit_id: int
    unit: Optional[str]
    quantity: float
    price_id: Optional[int]
    unit_price: Optional[float]

    class Config:
        from_attributes = True


class RecommendationResponse(BaseModel):
    list_item_id: int
    price_saving: Optional[float] = None
    reason: Optional[str] = None


class ListItemResponse(BaseModel):
    id: int
    list_id: int
    user_id: int
    product: ProductResponse
    vendor_id: int
    vendor_name: Optional[str]
    total_price: float

    state: str
    selection: str
    is_base_product: bool
    is_anchored: bool
    is_selected: bool
    is_rejected: bool
    base_id: Optional[int]
    comparison_product_ids: List[int] = []

    recommendation: Optional[RecommendationResponse] = None
    sale_unit_quantities: List[SaleUnitQuantityResponse] = []

    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SaleUnitQuantity(BaseModel):
    sale_unit_id: int = Field(..., gt=0)
    quantity: float = Field(..., ge=0)


class QuantityUpdateRequest(SaleUnitQuantity):
    list_item_id: int = Field(..., gt=0)


class QuantitiesUpdateRequest(BaseModel):
    list_item_id: int = Field(..., gt=0)
    quantities: List[SaleUnitQuantity] = Field(..., min_length=1)

    @validator("quantities")
    def validate_unique_sale_units(cls, v):
        ids = [q.sale_unit_id for q in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Each sale unit may appear only once")
        return v


class SaleUnitPrice(BaseModel):
    sale_unit_id: int = Field(..., gt=0)
    price: float = Field(..., gt=0)


class PriceUpdateRequest(BaseModel):
    list_item_id: int = Field(..., gt=0)
    prices: List[SaleUnitPrice] = Field(..., min_length=1)


class UnitLabelPrice(BaseModel):
    unit: str = Field(..., min_length=1, max_length=20)
    price: float = Field(..., gt=0)

    @validator("unit")
    def normalize_unit(cls, v):
        return normalize_unit_label(v)


class PriceByProductNumberRequest(BaseModel):
    prices: List[UnitLabelPrice] = Field(..., min_length=1)


class SelectionToggleRequest(BaseModel):
    base_list_item_id: int = Field(..., gt=0)


class ListItemEnvelope(BaseModel):
    list_item: ListItemResponse
    message: Optional[str] = None


class ListItemsEnvelope(BaseModel):
    list_items: List[ListItemResponse]
    message: Optional[str] = None
