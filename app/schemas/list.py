from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, List
from datetime import datetime

from app.schemas.list_item import ListItemResponse


class ListCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)


class ListUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    @validator("name")
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("List name cannot be blank")
        return v.strip()


class ListSummary(BaseModel):
    id: int
    user_id: int
    name: str
    items_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ListResponse(ListSummary):
    items: List[ListItemResponse] = []


class ListEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    list_: ListResponse = Field(..., alias="list")
    message: Optional[str] = None


class ListPage(BaseModel):
    results: List[ListSummary]
    page: int
    limit: int
    total_pages: int
    total_results: int


class CategoryItem(BaseModel):
    list_item: ListItemResponse
    recommended: bool = False
    recommended_reason: Optional[str] = None


class CategoryGroup(BaseModel):
    category: str
    items: List[CategoryItem]


class CategoryAnalysisResponse(BaseModel):
    list_id: int
    categories: List[CategoryGroup]
