from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from storefront.db import Base

KARATS = ("14K", "18K", "21K", "22K", "24K")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(100), unique=True, index=True, nullable=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(280), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    weight_grams = Column(Numeric(10, 2), nullable=True)
    karat = Column(Enum(*KARATS, name="product_karat"), nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_gold_weight_priced(self) -> bool:
        return self.karat is not None and self.weight_grams is not None

    def __repr__(self):
        return f"<Product id={self.id} slug={self.slug}>"
