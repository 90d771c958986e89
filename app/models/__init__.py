from app.models.user import User
from app.models.vendor import Vendor
from app.models.product import Product, ProductSaleUnit
from app.models.price import Price
from app.models.shopping_list import (
    ShoppingList,
    ListItem,
    ListItemSaleUnit,
    ComparisonState,
    Selection,
)
from app.models.purchase_list import (
    PurchaseList,
    PurchaseListItem,
    PurchaseListVendorCost,
)

__all__ = [
    "User",
    "Vendor",
    "Product",
    "ProductSaleUnit",
    "Price",
    "ShoppingList",
    "ListItem",
    "ListItemSaleUnit",
    "ComparisonState",
    "Selection",
    "PurchaseList",
    "PurchaseListItem",
    "PurchaseListVendorCost",
]
