from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.dependencies import get_current_user, get_classifier, get_page_params
from app.models.user import User
from app.schemas.product import ProductCreate, ProductEnvelope, ProductPage
from app.services.catalog_service import CatalogService
from app.services.classifier import Classifier
from app.utils.pagination import PageParams

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=ProductPage)
def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    vendor: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CatalogService(db).query_products(
        params, search=search, category=category, vendor=vendor
    )


@router.get("/{product_id}", response_model=ProductEnvelope)
def get_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"product": CatalogService(db).get_product(product_id)}


@router.post("", response_model=ProductEnvelope)
async def create_or_get_product(
    request: ProductCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    classifier: Classifier = Depends(get_classifier),
):
    """
    Registers a vendor product, or refreshes the catalog prices of an
    existing one. Returns 201 when the product was created.
    """
    service = CatalogService(db)
    category = await service.categorize(classifier, request)
    product, created = service.create_or_get_product(request, category)

    if created:
        response.status_code = status.HTTP_201_CREATED
    return {
        "product": product,
        "message": "Product created successfully" if created else "Product already exists",
    }
