from sqlalchemy import (
    Column,
    Integer,
    Float,
    String,
    Boolean,
    ForeignKey,
    DateTime,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base


class PurchaseList(Base):
    __tablename__ = "purchase_lists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # historical record: survives the deletion of its source list
    list_id = Column(
        Integer,
        ForeignKey("lists.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    name = Column(String, nullable=False, default="Untitled Purchase List", index=True)

    total_amount = Column(Float, nullable=False, default=0.0)
    unselected_total_amount = Column(Float, nullable=False, default=0.0)
    price_saving = Column(Float, nullable=True)
    items_count = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="purchase_lists")
    list = relationship("ShoppingList", back_populates="purchase_list")
    items = relationship(
        "PurchaseListItem",
        back_populates="purchase_list",
        cascade="all, delete-orphan",
        order_by=lambda: (PurchaseListItem.created_at.desc(), PurchaseListItem.id.desc()),
    )
    additional_cost = relationship(
        "PurchaseListVendorCost",
        back_populates="purchase_list",
        cascade="all, delete-orphan",
        order_by="PurchaseListVendorCost.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return (
            f"<PurchaseList(id={self.id}, list_id={self.list_id}, "
            f"total_amount={self.total_amount}, items_count={self.items_count})>"
        )


class PurchaseListVendorCost(Base):
    """Running per-vendor total of a purchase list (``additional_cost`` bucket)"""

    __tablename__ = "purchase_list_vendor_costs"

    id = Column(Integer, primary_key=True, index=True)
    purchase_list_id = Column(
        Integer, ForeignKey("purchase_lists.id", ondelete="CASCADE"), nullable=False
    )
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)

    total_amount = Column(Float, nullable=False, default=0.0)
    price_saving = Column(Float, nullable=True)

    purchase_list = relationship("PurchaseList", back_populates="additional_cost")
    vendor = relationship("Vendor")

    __table_args__ = (
        UniqueConstraint("purchase_list_id", "vendor_id", name="uq_vendor_cost_bucket"),
    )

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    def __repr__(self):
        return f"<PurchaseListVendorCost(vendor_id={self.vendor_id}, total_amount={self.total_amount})>"


class PurchaseListItem(Base):
    """
    Frozen snapshot of one resolved comparison.

    ``price_at_order`` and the two ``*_total_price`` columns are written once
    at consolidation time and never follow later price changes.
    """

    __tablename__ = "purchase_list_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_list_id = Column(
        Integer, ForeignKey("purchase_lists.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    list_item_id = Column(
        Integer, ForeignKey("list_items.id", ondelete="SET NULL"), nullable=True
    )
    unselected_list_item_id = Column(
        Integer, ForeignKey("list_items.id", ondelete="SET NULL"), nullable=True
    )

    selected_total_price = Column(Float, nullable=False, default=0.0)
    unselected_total_price = Column(Float, nullable=False, default=0.0)
    selected_vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    unselected_vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)

    # [{"sale_unit_id", "unit", "price_id", "price", "quantity"}]
    price_at_order = Column(JSON, nullable=False, default=list)

    is_anchored = Column(Boolean, nullable=False, default=False)
    recommendation = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    purchase_list = relationship("PurchaseList", back_populates="items")
    user = relationship("User")
    list_item = relationship("ListItem", foreign_keys=[list_item_id])
    unselected_list_item = relationship(
        "ListItem", foreign_keys=[unselected_list_item_id]
    )
    selected_vendor = relationship("Vendor", foreign_keys=[selected_vendor_id])
    unselected_vendor = relationship("Vendor", foreign_keys=[unselected_vendor_id])

    def __repr__(self):
        return (
            f"<PurchaseListItem(id={self.id}, list_item_id={self.list_item_id}, "
            f"unselected_list_item_id={self.unselected_list_item_id}, is_anchored={self.is_anchored})>"
        )
