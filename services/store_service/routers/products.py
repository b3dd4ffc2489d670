"""Product router: catalog browsing and admin product management with images."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from libs.auth.dependencies import require_admin
from libs.auth.models import User
from libs.common.asset_host import AssetHostClient, get_asset_host
from libs.common.config import get_settings
from libs.db.session import get_async_db
from pydantic import ValidationError
from services.store_service.models import ProductSort
from services.store_service.schemas import (
    MessageResponse,
    ProductCreate,
    ProductDetail,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from services.store_service.services import catalog_ops, image_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/products", tags=["products"])


# ============================================================================
# FORM PARSING
# ============================================================================


def _validate_form(schema, fields: dict):
    # Blank form fields mean "not supplied"
    payload = {key: value for key, value in fields.items() if value not in (None, "")}
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def product_create_form(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    subcategory_id: Optional[str] = Form(None),
) -> ProductCreate:
    return _validate_form(ProductCreate, locals())


def product_update_form(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    subcategory_id: Optional[str] = Form(None),
) -> ProductUpdate:
    return _validate_form(ProductUpdate, locals())


# ============================================================================
# PUBLIC CATALOG
# ============================================================================


@router.get("", response_model=ProductListResponse)
async def list_products(
    category: Optional[uuid.UUID] = None,
    subcategory: Optional[uuid.UUID] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    rating: Optional[float] = Query(None, ge=0, le=5),
    search: Optional[str] = None,
    sort: ProductSort = ProductSort.NEWEST,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Browse products with filtering, sorting and pagination."""
    products, total, total_pages = await catalog_ops.list_products(
        db,
        category_id=category,
        subcategory_id=subcategory,
        min_price=min_price,
        max_price=max_price,
        min_rating=rating,
        search=search,
        sort=sort,
        page=page,
        page_size=limit,
    )
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=limit,
        total_pages=total_pages,
    )


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(product_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    """Product detail including reviews."""
    return await catalog_ops.get_product(db, product_id, with_reviews=True)


# ============================================================================
# ADMIN MANAGEMENT
# ============================================================================


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    current_user: User = Depends(require_admin),
    product_in: ProductCreate = Depends(product_create_form),
    images: list[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_async_db),
    asset_host: AssetHostClient = Depends(get_asset_host),
):
    """Create a product; images are uploaded only after references check out."""
    image_ops.validate_image_files(images, get_settings().MAX_PRODUCT_IMAGES)
    await catalog_ops.ensure_category_reference(
        db, product_in.category_id, product_in.subcategory_id
    )

    assets = await image_ops.upload_images(asset_host, images)
    try:
        return await catalog_ops.create_product(
            db, product_in, created_by=current_user.id, images=assets
        )
    except Exception:
        await image_ops.delete_images(asset_host, (a.storage_id for a in assets))
        raise


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    product_in: ProductUpdate = Depends(product_update_form),
    images: list[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_async_db),
    asset_host: AssetHostClient = Depends(get_asset_host),
):
    """Update a product. Sending images replaces the whole image set."""
    product = await catalog_ops.get_product(db, product_id)
    changes = await catalog_ops.prepare_product_update(db, product, product_in)
    image_ops.validate_image_files(images, get_settings().MAX_PRODUCT_IMAGES)

    assets = await image_ops.upload_images(asset_host, images) if images else None
    try:
        replaced = await catalog_ops.update_product(db, product, changes, images=assets)
    except Exception:
        if assets:
            await image_ops.delete_images(asset_host, (a.storage_id for a in assets))
        raise

    await image_ops.delete_images(asset_host, replaced)
    return await catalog_ops.get_product(db, product_id)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    asset_host: AssetHostClient = Depends(get_asset_host),
):
    """Delete a product and its stored images."""
    product = await catalog_ops.get_product(db, product_id)
    storage_ids = await catalog_ops.delete_product(db, product)
    await image_ops.delete_images(asset_host, storage_ids)
    return MessageResponse(message="Product deleted successfully")
