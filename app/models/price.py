from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base


class Price(Base):
    """
    One row of price history for a sale unit.

    ``list_item_id`` NULL marks the catalog price of the sale unit; otherwise
    the row belongs to a single line item. Rows are never updated except to
    flip ``active`` off when a newer price replaces them.
    """

    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, index=True)
    sale_unit_id = Column(
        Integer,
        ForeignKey("product_sale_units.id", ondelete="CASCADE"),
        nullable=False,
    )
    list_item_id = Column(
        Integer, ForeignKey("list_items.id", ondelete="CASCADE"), nullable=True
    )

    amount = Column(Float, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    sale_unit = relationship("ProductSaleUnit")
    list_item = relationship("ListItem", back_populates="prices")

    __table_args__ = (
        Index("ix_prices_item_unit", "list_item_id", "sale_unit_id"),
        Index(
            "uq_prices_active_item_unit",
            "list_item_id",
            "sale_unit_id",
            unique=True,
            sqlite_where=text("active"),
            postgresql_where=text("active"),
        ),
    )

    def __repr__(self):
        return f"<Price(id={self.id}, sale_unit_id={self.sale_unit_id}, amount={self.amount}, active={self.active})>"
