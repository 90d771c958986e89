from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime

from app.utils.validators import normalize_unit_label, validate_product_number


class UnitPrice(BaseModel):
    unit: str = Field(..., min_length=1, max_length=20)
    price: Optional[float] = Field(None, gt=0)

    @validator("unit")
    def normalize_unit(cls, v):
        label = normalize_unit_label(v)
        if not label:
            raise ValueError("Unit label cannot be empty")
        return label


class ProductCreate(BaseModel):
    """Product as scraped from a vendor site, used to add it to a list"""

    vendor: str = Field(..., min_length=1, max_length=100)
    brand: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=500)
    product_number: str = Field(..., min_length=1, max_length=50)
    pack_size: str = Field(..., min_length=1, max_length=100)
    img_src: Optional[str] = Field(None, max_length=1000)
    url: Optional[str] = Field(None, max_length=1000)
    prices: List[UnitPrice] = Field(..., min_length=1)

    @validator("vendor", "brand", "description", "pack_size")
    def strip_text(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be blank")
        return v.strip()

    @validator("product_number")
    def check_product_number(cls, v):
        if not validate_product_number(v):
            raise ValueError("Invalid product number")
        return v.strip()

    @validator("prices")
    def validate_unique_units(cls, v):
        units = [p.unit for p in v]
        if len(units) != len(set(units)):
            raise ValueError("Each sale unit may appear only once")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "vendor": "Sysco",
                "brand": "Heinz",
                "description": "Ketchup Fancy Tomato",
                "product_number": "4183720",
                "pack_size": "6/114 OZ",
                "prices": [{"unit": "CS", "price": 48.75}, {"unit": "EA", "price": 9.1}],
            }
        }


class VendorResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class PriceResponse(BaseModel):
    id: int
    sale_unit_id: int
    list_item_id: Optional[int]
    amount: float
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SaleUnitResponse(BaseModel):
    id: int
    unit: str
    current_price: Optional[PriceResponse] = None

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    vendor: VendorResponse
    brand: str
    description: str
    product_number: str
    pack_size: str
    img_src: Optional[str]
    url: Optional[str]
    category: Optional[str]
    sale_units: List[SaleUnitResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ProductEnvelope(BaseModel):
    product: ProductResponse
    message: Optional[str] = None


class ProductPage(BaseModel):
    results: List[ProductResponse]
    page: int
    limit: int
    total_pages: int
    total_results: int
