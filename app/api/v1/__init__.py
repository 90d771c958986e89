"""
API v1 routes
"""

from fastapi import APIRouter
from app.api.v1 import (
    auth,
    users,
    products,
    lists,
    list_items,
    purchase_lists,
    purchase_list_items,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(products.router)
api_router.include_router(lists.router)
api_router.include_router(list_items.router)
api_router.include_router(purchase_lists.router)
api_router.include_router(purchase_list_items.router)

__all__ = ["api_router"]
