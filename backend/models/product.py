# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

# Catalog entry. Orders only read its price as a snapshot source.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)

    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)

    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan")


# Image shown next to a product on the admin order detail
class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    url = Column(String, nullable=False)

    product = relationship("Product", back_populates="images")
