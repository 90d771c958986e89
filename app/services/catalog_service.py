from sqlalchemy.orm import Session
from typing import Optional, Tuple, Dict, Any
import asyncio
import logging

from app.core.config import settings
from app.middleware.transaction_handler import transactional
from app.models.product import Product, ProductSaleUnit
from app.models.vendor import Vendor
from app.schemas.product import ProductCreate
from app.services.classifier import Classifier, ClassifierError
from app.services.pricing_service import PricingService
from app.utils.exceptions import NotFoundError
from app.utils.money import round_money
from app.utils.pagination import PageParams, paginate
from app.utils.validators import sanitize_search_query

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.pricing = PricingService(db)

    def get_or_create_vendor(self, name: str) -> Vendor:
        vendor = self.db.query(Vendor).filter(Vendor.name == name).first()
        if vendor:
            return vendor

        vendor = Vendor(name=name)
        self.db.add(vendor)
        self.db.flush()
        logger.info(f"Vendor created: {vendor.id} - {vendor.name}")
        return vendor

    def get_product(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        return product

    def find_by_product_number(self, product_number: str) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.product_number == product_number)
            .first()
        )

    def query_products(
        self,
        params: PageParams,
        search: Optional[str] = None,
        category: Optional[str] = None,
        vendor: Optional[str] = None,
    ) -> Dict[str, Any]:
        query = self.db.query(Product)

        search = sanitize_search_query(search)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                Product.description.ilike(pattern)
                | Product.brand.ilike(pattern)
                | (Product.product_number == search)
            )
        if category:
            query = query.filter(Product.category == category)
        if vendor:
            query = query.join(Vendor).filter(Vendor.name == vendor)

        return paginate(
            query,
            Product,
            params,
            allowed_sort_fields=("created_at", "brand", "description", "product_number"),
        )

    async def categorize(
        self, classifier: Classifier, product_data: ProductCreate
    ) -> Optional[str]:
        """
        Best-effort category for a product that is not in the catalog yet.

        Returns None when the product already exists or the classifier
        fails or times out.
        """
        if self.find_by_product_number(product_data.product_number):
            return None

        try:
            return await asyncio.wait_for(
                classifier.categorize(product_data.brand, product_data.description),
                timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Categorization of {product_data.product_number} timed out")
        except ClassifierError as e:
            logger.warning(f"Categorization of {product_data.product_number} failed: {e}")
        except Exception as e:
            logger.warning(
                f"Categorization of {product_data.product_number} failed: "
                f"{type(e).__name__}: {e}"
            )
        return None

    @transactional
    def create_or_get_product(
        self, product_data: ProductCreate, category: Optional[str] = None
    ) -> Tuple[Product, bool]:
        """
        Returns ``(product, created)``.

        An existing product number is reused: prices that differ from the
        catalog price of a matching sale unit are rotated through the ledger.
        """
        product = self.find_by_product_number(product_data.product_number)
        if product:
            self._apply_price_deltas(product, product_data)
            if category and not product.category:
                product.category = category
            return product, False

        vendor = self.get_or_create_vendor(product_data.vendor)
        product = Product(
            vendor_id=vendor.id,
            brand=product_data.brand,
            description=product_data.description,
            product_number=product_data.product_number,
            pack_size=product_data.pack_size,
            img_src=product_data.img_src,
            url=product_data.url,
            category=category,
        )
        self.db.add(product)
        self.db.flush()

        for entry in product_data.prices:
            sale_unit = ProductSaleUnit(product_id=product.id, unit=entry.unit)
            product.sale_units.append(sale_unit)
            self.db.flush()
            if entry.price is not None:
                self.pricing.rotate_catalog_price(sale_unit, entry.price)

        logger.info(
            f"Product created: {product.id} - {product.product_number} "
            f"({len(product_data.prices)} sale units, category={category})"
        )
        return product, True

    def _apply_price_deltas(self, product: Product, product_data: ProductCreate):
        for entry in product_data.prices:
            sale_unit = product.sale_unit_by_label(entry.unit)
            if sale_unit is None:
                logger.warning(
                    f"Ignoring unknown sale unit '{entry.unit}' for product "
                    f"{product.product_number}"
                )
                continue
            if entry.price is None:
                continue

            current = sale_unit.current_price
            if current is None or round_money(current.amount) != round_money(entry.price):
                self.pricing.rotate_catalog_price(sale_unit, entry.price)
