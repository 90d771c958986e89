from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_user, get_page_params
from app.models.user import User
from app.schemas.purchase_list import (
    PurchaseListCreate,
    PurchaseListRename,
    PurchaseListItemCreate,
    PurchaseListEnvelope,
    PurchaseListItemEnvelope,
    PurchaseListPage,
)
from app.services.purchase_list_service import PurchaseListService
from app.utils.pagination import PageParams

router = APIRouter(prefix="/purchase-lists", tags=["Purchase Lists"])


@router.post("", response_model=PurchaseListEnvelope, status_code=status.HTTP_201_CREATED)
def create_purchase_list(
    request: PurchaseListCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase_list = PurchaseListService(db).create_purchase_list(
        current_user, request.list_id, request.name
    )
    return {"purchase_list": purchase_list, "message": "Purchase list created successfully"}


@router.get("", response_model=PurchaseListPage)
def get_purchase_lists(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PurchaseListService(db).query_purchase_lists(current_user, params)


@router.post(
    "/from-list/{list_id}",
    response_model=PurchaseListEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def upsert_purchase_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rebuilds the purchase list of a list from its current selections"""
    purchase_list = PurchaseListService(db).upsert(current_user, list_id)
    return {"purchase_list": purchase_list, "message": "Purchase list generated successfully"}


@router.get("/by-list/{list_id}", response_model=PurchaseListEnvelope)
def get_purchase_list_by_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase_list = PurchaseListService(db).get_by_list_with_savings(current_user, list_id)
    return {"purchase_list": purchase_list}


@router.get("/{purchase_list_id}", response_model=PurchaseListEnvelope)
def get_purchase_list(
    purchase_list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase_list = PurchaseListService(db).get_with_savings(current_user, purchase_list_id)
    return {"purchase_list": purchase_list}


@router.patch("/{purchase_list_id}/name", response_model=PurchaseListEnvelope)
def rename_purchase_list(
    purchase_list_id: int,
    request: PurchaseListRename,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase_list = PurchaseListService(db).rename(
        current_user, purchase_list_id, request.name
    )
    return {"purchase_list": purchase_list, "message": "Purchase list renamed successfully"}


@router.delete("/{purchase_list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase_list(
    purchase_list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    PurchaseListService(db).delete_purchase_list(current_user, purchase_list_id)


@router.post(
    "/{purchase_list_id}/items",
    response_model=PurchaseListItemEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def add_purchase_list_item(
    purchase_list_id: int,
    request: PurchaseListItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = PurchaseListService(db).add_item(
        current_user,
        purchase_list_id,
        request.selected_list_item_id,
        request.unselected_list_item_id,
    )
    return {"purchase_list_item": item, "message": "Item added to purchase list successfully"}


@router.delete(
    "/{purchase_list_id}/items/{purchase_list_item_id}",
    response_model=PurchaseListEnvelope,
)
def remove_purchase_list_item(
    purchase_list_id: int,
    purchase_list_item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    purchase_list = PurchaseListService(db).remove_item(
        current_user, purchase_list_item_id, purchase_list_id
    )
    return {
        "purchase_list": purchase_list,
        "message": "Item removed from purchase list successfully",
    }
