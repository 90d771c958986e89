from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Union

from app.core.database import get_db
from app.core.dependencies import get_current_user, get_classifier, get_page_params
from app.models.user import User
from app.schemas.list import (
    ListCreate,
    ListUpdate,
    ListEnvelope,
    ListPage,
    CategoryAnalysisResponse,
)
from app.schemas.list_item import ListItemEnvelope
from app.schemas.product import ProductCreate
from app.services.analysis_service import AnalysisService
from app.services.classifier import Classifier
from app.services.comparison_service import ComparisonService
from app.services.list_service import ListService
from app.utils.pagination import PageParams

router = APIRouter(prefix="/lists", tags=["Lists"])


@router.post("", response_model=ListEnvelope, status_code=status.HTTP_201_CREATED)
def create_list(
    request: ListCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shopping_list = ListService(db).create_list(current_user, request.name)
    return {"list": shopping_list, "message": "List created successfully"}


@router.get("", response_model=ListPage)
def get_lists(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ListService(db).query_lists(current_user, params)


@router.get("/{list_id}", response_model=ListEnvelope)
def get_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"list": ListService(db).get_list(current_user, list_id)}


@router.patch("/{list_id}", response_model=ListEnvelope)
def update_list(
    list_id: int,
    request: ListUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shopping_list = ListService(db).update_list(current_user, list_id, request.name)
    return {"list": shopping_list, "message": "List updated successfully"}


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ListService(db).delete_list(current_user, list_id)


@router.post(
    "/{list_id}/items",
    response_model=ListItemEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_list_item(
    list_id: int,
    request: ProductCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    classifier: Classifier = Depends(get_classifier),
):
    item = await ListService(db).add_line_item(current_user, list_id, request, classifier)
    return {"list_item": item, "message": "Product added to list successfully"}


@router.delete("/{list_id}/items/{list_item_id}", response_model=ListEnvelope)
def remove_list_item(
    list_id: int,
    list_item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = ListService(db)
    service.remove_list_item(current_user, list_id, list_item_id)
    return {
        "list": service.get_list(current_user, list_id),
        "message": "List item removed successfully",
    }


@router.get(
    "/{list_id}/analysis",
    response_model=Union[ListEnvelope, CategoryAnalysisResponse],
)
async def get_list_analysis(
    list_id: int,
    view: str = Query("recommendation", pattern="^(recommendation|category)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    classifier: Classifier = Depends(get_classifier),
):
    """
    ``recommendation``: asks the classifier for a winner in every comparison
    group and stores it on the group's base item.

    ``category``: read-only view of the list grouped by product category.
    """
    if view == "category":
        return await AnalysisService(db).get_category_analysis(
            current_user, list_id, classifier
        )

    shopping_list = await ComparisonService(db).get_list_analysis(
        current_user, list_id, classifier
    )
    return {"list": shopping_list}
