from sqlalchemy import Column, Integer, ForeignKey, String, Numeric
from sqlalchemy.orm import relationship

from checkout.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    default_price = Column(Numeric(10, 2), nullable=True)

    # dawka substancji czynnej, mg na sztuke; jesli brak to liczone z procentu
    dose_mg_per_unit = Column(Numeric(10, 2), nullable=True)
    potency_percent = Column(Numeric(5, 2), nullable=True)

    variants = relationship("ProductVariantModel", back_populates="product")


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    name = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)

    product = relationship("ProductModel", back_populates="variants")
