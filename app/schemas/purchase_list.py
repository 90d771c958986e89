from pydantic import BaseModel, Field, validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class PurchaseListCreate(BaseModel):
    list_id: int = Field(..., gt=0)
    name: Optional[str] = Field(None, max_length=200)


class PurchaseListRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    @validator("name")
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Purchase list name cannot be blank")
        return v.strip()


class PurchaseListItemCreate(BaseModel):
    selected_list_item_id: int = Field(..., gt=0)
    unselected_list_item_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def validate_distinct(self):
        if self.selected_list_item_id == self.unselected_list_item_id:
            raise ValueError("Selected and unselected list items must be different")
        return self


class VendorCostResponse(BaseModel):
    vendor_id: int
    vendor_name: Optional[str]
    total_amount: float
    price_saving: Optional[float]

    class Config:
        from_attributes = True


class PurchaseListItemResponse(BaseModel):
    id: int
    purchase_list_id: int
    user_id: int
    list_item_id: Optional[int]
    unselected_list_item_id: Optional[int]
    selected_total_price: float
    unselected_total_price: float
    selected_vendor_id: int
    unselected_vendor_id: Optional[int]
    price_at_order: List[Dict[str, Any]]
    is_anchored: bool
    recommendation: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseListSummary(BaseModel):
    id: int
    user_id: int
    list_id: Optional[int]
    name: str
    total_amount: float
    unselected_total_amount: float
    price_saving: Optional[float]
    items_count: int
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PurchaseListResponse(PurchaseListSummary):
    additional_cost: List[VendorCostResponse] = []
    items: List[PurchaseListItemResponse] = []


class PurchaseListEnvelope(BaseModel):
    purchase_list: PurchaseListResponse
    message: Optional[str] = None


class PurchaseListItemEnvelope(BaseModel):
    purchase_list_item: PurchaseListItemResponse
    message: Optional[str] = None


class PurchaseListPage(BaseModel):
    results: List[PurchaseListSummary]
    page: int
    limit: int
    total_pages: int
    total_results: int


class PurchaseListItemPage(BaseModel):
    results: List[PurchaseListItemResponse]
    page: int
    limit: int
    total_pages: int
    total_results: int
