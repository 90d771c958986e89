from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.dependencies import get_current_user, get_page_params
from app.models.user import User
from app.schemas.purchase_list import PurchaseListItemEnvelope, PurchaseListItemPage
from app.services.purchase_list_service import PurchaseListService
from app.utils.pagination import PageParams

router = APIRouter(prefix="/purchase-list-items", tags=["Purchase List Items"])


@router.get("", response_model=PurchaseListItemPage)
def get_purchase_list_items(
    purchase_list_id: Optional[int] = Query(None, gt=0),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PurchaseListService(db).query_purchase_list_items(
        current_user, params, purchase_list_id
    )


@router.get("/{purchase_list_item_id}", response_model=PurchaseListItemEnvelope)
def get_purchase_list_item(
    purchase_list_item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = PurchaseListService(db).get_purchase_list_item(current_user, purchase_list_item_id)
    return {"purchase_list_item": item}
