"""Store Service models package."""

# Registers the users table that reviews, products and orders reference
from libs.auth.models import User  # noqa: F401
from services.store_service.models.catalog import (
    Category,
    Product,
    ProductImage,
    Review,
    Subcategory,
)
from services.store_service.models.commerce import Order, OrderItem
from services.store_service.models.enums import OrderStatus, PaymentStatus, ProductSort

__all__ = [
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "ProductImage",
    "ProductSort",
    "Review",
    "Subcategory",
]
