from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base
from app.utils.validators import normalize_unit_label


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)

    brand = Column(String, nullable=False)
    description = Column(String, nullable=False)
    product_number = Column(String, unique=True, nullable=False, index=True)
    pack_size = Column(String, nullable=False)

    img_src = Column(String)
    url = Column(String)

    # assigned by the classifier, NULL until categorization succeeds
    category = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", back_populates="products")
    sale_units = relationship(
        "ProductSaleUnit",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSaleUnit.id",
    )
    list_items = relationship("ListItem", back_populates="product")

    def sale_unit_by_label(self, unit: str):
        label = normalize_unit_label(unit)
        for sale_unit in self.sale_units:
            if sale_unit.unit == label:
                return sale_unit
        return None

    def __repr__(self):
        return f"<Product(id={self.id}, product_number={self.product_number}, category={self.category})>"


class ProductSaleUnit(Base):
    __tablename__ = "product_sale_units"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    unit = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    product = relationship("Product", back_populates="sale_units")

    # catalog price: the active row not owned by any list item
    current_price = relationship(
        "Price",
        primaryjoin=(
            "and_(ProductSaleUnit.id == Price.sale_unit_id, "
            "Price.list_item_id.is_(None), Price.active.is_(True))"
        ),
        uselist=False,
        viewonly=True,
    )

    __table_args__ = (
        UniqueConstraint("product_id", "unit", name="uq_sale_unit_product_unit"),
    )

    def __repr__(self):
        return f"<ProductSaleUnit(id={self.id}, product_id={self.product_id}, unit={self.unit})>"
