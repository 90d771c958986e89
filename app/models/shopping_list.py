from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    Float,
    String,
    ForeignKey,
    DateTime,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base


class ComparisonState(str, Enum):
    FREE = "free"
    ANCHORED = "anchored"
    BASE = "base"
    MEMBER = "member"


class Selection(str, Enum):
    NONE = "none"
    SELECTED = "selected"
    REJECTED = "rejected"


class ShoppingList(Base):
    __tablename__ = "lists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String, nullable=False, default="Untitled List", index=True)
    items_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="lists")
    # newest first: items are inserted at the head of the list
    items = relationship(
        "ListItem",
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        order_by=lambda: (ListItem.created_at.desc(), ListItem.id.desc()),
    )
    purchase_list = relationship("PurchaseList", back_populates="list", uselist=False)

    def __repr__(self):
        return f"<ShoppingList(id={self.id}, user_id={self.user_id}, items_count={self.items_count})>"


class ListItem(Base):
    __tablename__ = "list_items"

    id = Column(Integer, primary_key=True, index=True)
    list_id = Column(
        Integer, ForeignKey("lists.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)

    total_price = Column(Float, nullable=False, default=0.0)

    # one column per concern so that e.g. anchored + base cannot be stored
    state = Column(String, nullable=False, default=ComparisonState.FREE.value)
    selection = Column(String, nullable=False, default=Selection.NONE.value)
    base_id = Column(
        Integer, ForeignKey("list_items.id", ondelete="SET NULL"), nullable=True
    )
    grouped_at = Column(DateTime, nullable=True)

    # {"list_item_id", "price_saving", "reason"}
    recommendation = Column(JSON, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    shopping_list = relationship("ShoppingList", back_populates="items")
    user = relationship("User")
    product = relationship("Product", back_populates="list_items")
    vendor = relationship("Vendor")

    sale_unit_quantities = relationship(
        "ListItemSaleUnit",
        back_populates="list_item",
        cascade="all, delete-orphan",
        order_by="ListItemSaleUnit.id",
    )
    prices = relationship(
        "Price", back_populates="list_item", cascade="all, delete-orphan"
    )

    base = relationship(
        "ListItem",
        remote_side=[id],
        back_populates="comparison_products",
        foreign_keys=[base_id],
    )
    comparison_products = relationship(
        "ListItem",
        back_populates="base",
        foreign_keys=[base_id],
        order_by=lambda: (ListItem.grouped_at, ListItem.id),
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_list_items_list_user_product", "list_id", "user_id", "product_id"),
        Index("ix_list_items_base", "base_id"),
    )

    @property
    def is_anchored(self) -> bool:
        return self.state == ComparisonState.ANCHORED.value

    @property
    def is_base_product(self) -> bool:
        return self.state == ComparisonState.BASE.value

    @property
    def is_member(self) -> bool:
        return self.state == ComparisonState.MEMBER.value

    @property
    def is_selected(self) -> bool:
        return self.selection == Selection.SELECTED.value

    @property
    def is_rejected(self) -> bool:
        return self.selection == Selection.REJECTED.value

    @property
    def comparison_product_ids(self):
        return [item.id for item in self.comparison_products]

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    def __repr__(self):
        return f"<ListItem(id={self.id}, state={self.state}, selection={self.selection}, total_price={self.total_price})>"


class ListItemSaleUnit(Base):
    __tablename__ = "list_item_sale_units"

    id = Column(Integer, primary_key=True, index=True)
    list_item_id = Column(
        Integer, ForeignKey("list_items.id", ondelete="CASCADE"), nullable=False
    )
    sale_unit_id = Column(
        Integer, ForeignKey("product_sale_units.id", ondelete="CASCADE"), nullable=False
    )
    price_id = Column(
        Integer, ForeignKey("prices.id", ondelete="SET NULL"), nullable=True
    )

    quantity = Column(Float, nullable=False, default=0)

    list_item = relationship("ListItem", back_populates="sale_unit_quantities")
    sale_unit = relationship("ProductSaleUnit")
    price = relationship("Price", foreign_keys=[price_id])

    __table_args__ = (
        UniqueConstraint("list_item_id", "sale_unit_id", name="uq_list_item_sale_unit"),
    )

    @property
    def unit(self):
        return self.sale_unit.unit if self.sale_unit else None

    @property
    def unit_price(self):
        return self.price.amount if self.price else None

    def __repr__(self):
        return f"<ListItemSaleUnit(list_item_id={self.list_item_id}, sale_unit_id={self.sale_unit_id}, quantity={self.quantity})>"
