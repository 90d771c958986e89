from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, RefreshRequest
from app.schemas.user import UserResponse, UserUpdateRequest
from app.schemas.product import (
    UnitPrice,
    ProductCreate,
    ProductResponse,
    ProductEnvelope,
    ProductPage,
)
from app.schemas.list_item import (
    ListItemResponse,
    ListItemEnvelope,
    ListItemsEnvelope,
    QuantityUpdateRequest,
    QuantitiesUpdateRequest,
    PriceUpdateRequest,
    PriceByProductNumberRequest,
    SelectionToggleRequest,
)
from app.schemas.list import (
    ListCreate,
    ListUpdate,
    ListResponse,
    ListEnvelope,
    ListPage,
    CategoryAnalysisResponse,
)
from app.schemas.purchase_list import (
    PurchaseListCreate,
    PurchaseListRename,
    PurchaseListItemCreate,
    PurchaseListResponse,
    PurchaseListEnvelope,
    PurchaseListItemEnvelope,
    PurchaseListPage,
    PurchaseListItemPage,
)

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "RefreshRequest",
    "UserResponse",
    "UserUpdateRequest",
    "UnitPrice",
    "ProductCreate",
    "ProductResponse",
    "ProductEnvelope",
    "ProductPage",
    "ListItemResponse",
    "ListItemEnvelope",
    "ListItemsEnvelope",
    "QuantityUpdateRequest",
    "QuantitiesUpdateRequest",
    "PriceUpdateRequest",
    "PriceByProductNumberRequest",
    "SelectionToggleRequest",
    "ListCreate",
    "ListUpdate",
    "ListResponse",
    "ListEnvelope",
    "ListPage",
    "CategoryAnalysisResponse",
    "PurchaseListCreate",
    "PurchaseListRename",
    "PurchaseListItemCreate",
    "PurchaseListResponse",
    "PurchaseListEnvelope",
    "PurchaseListItemEnvelope",
    "PurchaseListPage",
    "PurchaseListItemPage",
]
