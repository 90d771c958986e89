from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.list_item import (
    ListItemEnvelope,
    ListItemsEnvelope,
    QuantityUpdateRequest,
    QuantitiesUpdateRequest,
    PriceUpdateRequest,
    PriceByProductNumberRequest,
    SelectionToggleRequest,
)
from app.services.comparison_service import ComparisonService
from app.services.list_item_service import ListItemService

router = APIRouter(prefix="/list-items", tags=["List Items"])


@router.get("", response_model=ListItemsEnvelope)
def find_by_product_number(
    product_number: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = ListItemService(db).find_by_product_number(current_user, product_number)
    return {"list_items": items}


@router.patch("", response_model=ListItemsEnvelope)
def update_price_by_product_number(
    request: PriceByProductNumberRequest,
    product_number: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = ListItemService(db).set_prices_by_product_number(
        current_user, product_number, request.prices
    )
    return {"list_items": items, "message": "Prices updated successfully"}


@router.patch("/quantity", response_model=ListItemEnvelope)
def update_quantity(
    request: QuantityUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ListItemService(db).set_quantity(
        current_user, request.list_item_id, request.sale_unit_id, request.quantity
    )
    return {"list_item": item, "message": "Quantity updated successfully"}


@router.patch("/quantities", response_model=ListItemEnvelope)
def update_quantities(
    request: QuantitiesUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ListItemService(db).set_quantities(
        current_user, request.list_item_id, request.quantities
    )
    return {"list_item": item, "message": "Quantities updated successfully"}


@router.patch("/price", response_model=ListItemEnvelope)
def update_price(
    request: PriceUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ListItemService(db).set_price(
        current_user, request.list_item_id, request.prices
    )
    return {"list_item": item, "message": "Price updated successfully"}


@router.get("/{list_item_id}", response_model=ListItemEnvelope)
def get_list_item(
    list_item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"list_item": ListItemService(db).get_owned(current_user, list_item_id)}


@router.post("/{base_id}/comparison", response_model=ListItemEnvelope)
@router.post("/{base_id}/comparison/{comparison_id}", response_model=ListItemEnvelope)
def add_comparison_product(
    base_id: int,
    comparison_id: Optional[int] = None,
    mode: str = Query("add", pattern="^(add|replace)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    base, message = ComparisonService(db).add_comparison_product(
        current_user, base_id, comparison_id, mode
    )
    return {"list_item": base, "message": message}


@router.delete("/{base_id}/comparison", response_model=ListItemEnvelope)
@router.delete("/{base_id}/comparison/{comparison_id}", response_model=ListItemEnvelope)
def remove_comparison_product(
    base_id: int,
    comparison_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    base, message = ComparisonService(db).remove_comparison_product(
        current_user, base_id, comparison_id
    )
    return {"list_item": base, "message": message}


@router.patch("/{list_item_id}/anchor", response_model=ListItemEnvelope)
def toggle_anchor(
    list_item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ComparisonService(db).toggle_anchor(current_user, list_item_id)
    return {"list_item": item}


@router.patch("/{list_item_id}/select", response_model=ListItemEnvelope)
def toggle_selected(
    list_item_id: int,
    request: SelectionToggleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ComparisonService(db).toggle_is_selected(
        current_user, list_item_id, request.base_list_item_id
    )
    return {"list_item": item}


@router.patch("/{list_item_id}/reject", response_model=ListItemEnvelope)
def toggle_rejected(
    list_item_id: int,
    request: SelectionToggleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = ComparisonService(db).toggle_is_rejected(
        current_user, list_item_id, request.base_list_item_id
    )
    return {"list_item": item}
