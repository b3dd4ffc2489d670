"""Catalog operations: categories, subcategories, products and their references."""

import math
import uuid
from decimal import Decimal
from typing import Optional

from libs.common.asset_host import StoredAsset
from libs.common.exceptions import (
    Conflict,
    InvalidReference,
    NotFound,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.store_service.models import (
    Category,
    Product,
    ProductImage,
    ProductSort,
    Review,
    Subcategory,
)
from services.store_service.schemas import (
    CategoryCreate,
    CategoryUpdate,
    ProductCreate,
    ProductUpdate,
    SubcategoryCreate,
)
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

CATEGORY_LOAD_OPTIONS = (
    selectinload(Category.parent),
    selectinload(Category.subcategories),
)
PRODUCT_LOAD_OPTIONS = (
    selectinload(Product.category),
    selectinload(Product.subcategory),
    selectinload(Product.images),
)

_SORT_COLUMNS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "rating": Product.rating,
    "name": Product.name,
}


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(
        select(Category).options(*CATEGORY_LOAD_OPTIONS).order_by(Category.name)
    )
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: uuid.UUID) -> Category:
    result = await db.execute(
        select(Category)
        .where(Category.id == category_id)
        .options(*CATEGORY_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    category = result.scalar_one_or_none()
    if not category:
        raise NotFound("Category not found")
    return category


async def _ensure_unique_category_name(
    db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Category name already exists")


async def _ensure_parent_exists(db: AsyncSession, parent_id: uuid.UUID) -> None:
    if await db.get(Category, parent_id) is None:
        raise InvalidReference("Invalid parent category ID")


async def _ensure_not_descendant(
    db: AsyncSession, parent_id: uuid.UUID, category_id: uuid.UUID
) -> None:
    """Walk up from the proposed parent; reaching the category would close a loop."""
    seen = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == category_id:
            raise ValidationFailed("A category cannot be nested under its own descendant")
        seen.add(current)
        current = await db.scalar(select(Category.parent_id).where(Category.id == current))


async def _commit_category(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise Conflict("Category name already exists") from exc


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    await _ensure_unique_category_name(db, data.name)
    if data.parent_id is not None:
        await _ensure_parent_exists(db, data.parent_id)

    category = Category(**data.model_dump())
    db.add(category)
    await _commit_category(db)

    logger.info("Created category %s (%s)", category.id, category.name)
    return await get_category(db, category.id)


async def update_category(
    db: AsyncSession, category_id: uuid.UUID, data: CategoryUpdate
) -> Category:
    category = await get_category(db, category_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("name") is None:
        changes.pop("name", None)
    else:
        await _ensure_unique_category_name(db, changes["name"], exclude_id=category.id)

    parent_id = changes.get("parent_id")
    if parent_id is not None:
        if parent_id == category.id:
            raise ValidationFailed("A category cannot be its own parent")
        await _ensure_parent_exists(db, parent_id)
        await _ensure_not_descendant(db, parent_id, category.id)

    for field, value in changes.items():
        setattr(category, field, value)
    await _commit_category(db)

    return await get_category(db, category.id)


async def delete_category(db: AsyncSession, category_id: uuid.UUID) -> None:
    """Delete a category and detach its child categories.

    Children keep existing with ``parent_id`` cleared; the category's own
    subcategories are deleted with it. Categories still referenced by
    products cannot be deleted.
    """
    category = await get_category(db, category_id)

    in_use = await db.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    )
    if in_use.scalar_one():
        raise Conflict("Category is still used by products")

    await db.execute(
        update(Category)
        .where(Category.parent_id == category_id)
        .values(parent_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(category)
    await db.commit()

    logger.info("Deleted category %s and detached its children", category_id)


async def add_subcategory(
    db: AsyncSession, category_id: uuid.UUID, data: SubcategoryCreate
) -> Category:
    category = await get_category(db, category_id)
    category.subcategories.append(Subcategory(**data.model_dump()))
    await db.commit()
    return await get_category(db, category_id)


# ---------------------------------------------------------------------------
# Referential checks
# ---------------------------------------------------------------------------


async def ensure_category_reference(
    db: AsyncSession,
    category_id: uuid.UUID,
    subcategory_id: Optional[uuid.UUID] = None,
) -> None:
    """Validate product references before anything is written or uploaded."""
    if await db.get(Category, category_id) is None:
        raise InvalidReference("Invalid category ID")
    if subcategory_id is not None:
        subcategory = await db.get(Subcategory, subcategory_id)
        if subcategory is None or subcategory.category_id != category_id:
            raise InvalidReference("Invalid subcategory ID")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


async def get_product(
    db: AsyncSession, product_id: uuid.UUID, with_reviews: bool = False
) -> Product:
    options = list(PRODUCT_LOAD_OPTIONS)
    if with_reviews:
        options.append(selectinload(Product.reviews).selectinload(Review.author))
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


async def list_products(
    db: AsyncSession,
    *,
    category_id: Optional[uuid.UUID] = None,
    subcategory_id: Optional[uuid.UUID] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    min_rating: Optional[float] = None,
    search: Optional[str] = None,
    sort: ProductSort = ProductSort.NEWEST,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Product], int, int]:
    """Filter, sort and paginate products. Returns ``(items, total, total_pages)``."""
    query = select(Product)

    if category_id:
        query = query.where(Product.category_id == category_id)
    if subcategory_id:
        query = query.where(Product.subcategory_id == subcategory_id)
    if min_price is not None:
        query = query.where(Product.price >= min_price)
    if max_price is not None:
        query = query.where(Product.price <= max_price)
    if min_rating is not None:
        query = query.where(Product.rating >= min_rating)
    if search:
        search_term = f"%{search}%"
        query = query.where(
            or_(Product.name.ilike(search_term), Product.description.ilike(search_term))
        )

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # Sort and paginate
    column = _SORT_COLUMNS[sort.value.lstrip("-")]
    order = column.desc() if sort.value.startswith("-") else column.asc()
    query = query.order_by(order, Product.id).options(*PRODUCT_LOAD_OPTIONS)
    query = query.offset((page - 1) * page_size).limit(page_size)

    result = await db.execute(query)
    return list(result.scalars().all()), total, math.ceil(total / page_size)


def _image_rows(assets: list[StoredAsset]) -> list[ProductImage]:
    return [
        ProductImage(url=asset.url, storage_id=asset.storage_id, position=position)
        for position, asset in enumerate(assets)
    ]


async def create_product(
    db: AsyncSession,
    data: ProductCreate,
    *,
    created_by: uuid.UUID,
    images: list[StoredAsset],
) -> Product:
    product = Product(**data.model_dump(), created_by=created_by)
    product.images = _image_rows(images)
    db.add(product)
    await db.commit()

    logger.info("Created product %s with %d images", product.id, len(images))
    return await get_product(db, product.id)


async def prepare_product_update(
    db: AsyncSession, product: Product, data: ProductUpdate
) -> dict:
    """Validate an update against the catalog and return the changes to apply.

    Moving a product to another category drops its subcategory unless a new
    one is given.
    """
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == "subcategory_id"
    }
    category_id = changes.get("category_id", product.category_id)
    if "subcategory_id" not in changes and category_id != product.category_id:
        changes["subcategory_id"] = None
    subcategory_id = changes.get("subcategory_id", product.subcategory_id)

    await ensure_category_reference(db, category_id, subcategory_id)
    return changes


async def update_product(
    db: AsyncSession,
    product: Product,
    changes: dict,
    *,
    images: Optional[list[StoredAsset]] = None,
) -> list[str]:
    """Apply validated changes; when ``images`` is given it replaces the image set.

    Returns the storage ids of replaced images so the caller can delete them
    from the asset host once the new state is committed.
    """
    for field, value in changes.items():
        setattr(product, field, value)

    replaced: list[str] = []
    if images is not None:
        replaced = [image.storage_id for image in product.images]
        product.images = _image_rows(images)

    await db.commit()
    logger.info("Updated product %s", product.id)
    return replaced


async def delete_product(db: AsyncSession, product: Product) -> list[str]:
    """Delete a product. Returns the storage ids of its images."""
    storage_ids = [image.storage_id for image in product.images]
    await db.delete(product)
    await db.commit()
    logger.info("Deleted product %s", product.id)
    return storage_ids
