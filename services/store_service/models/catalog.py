"""Store catalog models: categories, subcategories, products, images, reviews."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# CATEGORIES
# ============================================================================


class Category(Base):
    """Product categories (e.g., 'Electronics'), optionally nested under a parent."""

    __tablename__ = "store_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Parent category; cleared (never cascaded) when the parent is deleted
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("store_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    # Relationships
    parent = relationship("Category", remote_side=[id])
    subcategories = relationship(
        "Subcategory",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Subcategory.created_at",
    )

    def __repr__(self):
        return f"<Category {self.name}>"


class Subcategory(Base):
    """Subcategory owned by a single category (e.g., 'Phones' under 'Electronics')."""

    __tablename__ = "store_subcategories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    category = relationship("Category", back_populates="subcategories")

    def __repr__(self):
        return f"<Subcategory {self.name}>"


# ============================================================================
# PRODUCTS
# ============================================================================


class Product(Base):
    """A product in the catalog. ``rating`` and ``review_count`` are derived."""

    __tablename__ = "store_products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_store_products_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_store_products_stock_non_negative"),
        CheckConstraint(
            "rating >= 0 AND rating <= 5", name="ck_store_products_rating_range"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_categories.id"), nullable=False
    )
    subcategory_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("store_subcategories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Aggregates over reviews, rewritten together with every review mutation
    rating: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    review_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    category = relationship("Category")
    subcategory = relationship("Subcategory")
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.position",
    )
    reviews = relationship(
        "Review",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Review.created_at",
    )

    def __repr__(self):
        return f"<Product {self.name}>"


class ProductImage(Base):
    """Image stored on the asset host; ``storage_id`` is the host's handle."""

    __tablename__ = "store_product_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    storage_id: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    product = relationship("Product", back_populates="images")


class Review(Base):
    """One review per (product, author)."""

    __tablename__ = "store_product_reviews"
    __table_args__ = (
        UniqueConstraint("product_id", "user_id", name="uq_store_reviews_product_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_store_reviews_rating"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Kept when the author is deleted so the product aggregate stays consistent
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    product = relationship("Product", back_populates="reviews")
    author = relationship("User")

    @property
    def author_name(self) -> Optional[str]:
        return self.author.name if self.author else None

    def __repr__(self):
        return f"<Review {self.rating} on {self.product_id}>"
