from sqlalchemy.orm import Session
from typing import Optional, Dict, Any
import logging

from app.middleware.transaction_handler import transactional
from app.models.shopping_list import ShoppingList, ListItem, ListItemSaleUnit
from app.models.user import User
from app.schemas.product import ProductCreate
from app.services.catalog_service import CatalogService
from app.services.classifier import Classifier
from app.services.list_item_service import ListItemService
from app.utils.exceptions import NotFoundError, ForbiddenError, ConflictError
from app.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Untitled List"


class ListService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.list_items = ListItemService(db)

    def get_list(self, user: User, list_id: int) -> ShoppingList:
        shopping_list = (
            self.db.query(ShoppingList).filter(ShoppingList.id == list_id).first()
        )
        if not shopping_list:
            raise NotFoundError("List not found")
        if shopping_list.user_id != user.id:
            raise ForbiddenError()
        return shopping_list

    def query_lists(self, user: User, params: PageParams) -> Dict[str, Any]:
        query = self.db.query(ShoppingList).filter(ShoppingList.user_id == user.id)
        return paginate(
            query,
            ShoppingList,
            params,
            allowed_sort_fields=("created_at", "updated_at", "name", "items_count"),
        )

    @transactional
    def create_list(self, user: User, name: Optional[str] = None) -> ShoppingList:
        shopping_list = ShoppingList(
            user_id=user.id,
            name=(name or "").strip() or DEFAULT_LIST_NAME,
            items_count=0,
        )
        self.db.add(shopping_list)
        self.db.flush()

        logger.info(f"List created: {shopping_list.id} for user {user.id}")
        return shopping_list

    @transactional
    def update_list(self, user: User, list_id: int, name: str) -> ShoppingList:
        shopping_list = self.get_list(user, list_id)
        shopping_list.name = name
        return shopping_list

    @transactional
    def delete_list(self, user: User, list_id: int) -> None:
        shopping_list = self.get_list(user, list_id)
        self.db.delete(shopping_list)
        logger.info(f"List deleted: {list_id}")

    async def add_line_item(
        self,
        user: User,
        list_id: int,
        product_data: ProductCreate,
        classifier: Classifier,
    ) -> ListItem:
        """
        Adds a vendor product to a list.

        A product new to the catalog is categorized first, outside the write
        transaction; a failed categorization leaves the category empty.
        """
        self.get_list(user, list_id)
        category = await self.catalog.categorize(classifier, product_data)
        return self._create_line_item(user, list_id, product_data, category)

    @transactional
    def _create_line_item(
        self,
        user: User,
        list_id: int,
        product_data: ProductCreate,
        category: Optional[str],
    ) -> ListItem:
        shopping_list = self.get_list(user, list_id)
        product, created = self.catalog.create_or_get_product(product_data, category)

        existing = (
            self.db.query(ListItem)
            .filter(
                ListItem.list_id == shopping_list.id,
                ListItem.user_id == user.id,
                ListItem.product_id == product.id,
            )
            .first()
        )
        if existing:
            raise ConflictError("Product already in list")

        item = ListItem(
            user_id=user.id,
            product_id=product.id,
            vendor_id=product.vendor_id,
            total_price=0.0,
        )
        shopping_list.items.insert(0, item)
        for sale_unit in product.sale_units:
            item.sale_unit_quantities.append(
                ListItemSaleUnit(sale_unit_id=sale_unit.id, quantity=0)
            )
        self.db.flush()

        prices = {entry.unit: entry.price for entry in product_data.prices}
        for sale_unit in product.sale_units:
            amount = prices.get(sale_unit.unit)
            if amount is not None:
                self.list_items.pricing.set_active_price(item, sale_unit.id, amount)

        self.list_items.refresh_count(shopping_list)

        logger.info(
            f"Product {product.product_number} added to list {shopping_list.id} "
            f"as item {item.id} (new product: {created})"
        )
        return item

    @transactional
    def remove_list_item(self, user: User, list_id: int, list_item_id: int) -> None:
        shopping_list = self.get_list(user, list_id)
        item = self.list_items.get_owned(user, list_item_id)
        if item.list_id != shopping_list.id:
            raise NotFoundError("List item not found in this list")

        self.list_items.remove(user, list_item_id)
