"""Store service routers package."""

from services.store_service.routers.auth import router as auth_router
from services.store_service.routers.categories import router as categories_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.products import router as products_router
from services.store_service.routers.reviews import router as reviews_router

__all__ = [
    "auth_router",
    "categories_router",
    "orders_router",
    "products_router",
    "reviews_router",
]
