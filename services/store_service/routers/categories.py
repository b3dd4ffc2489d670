"""Category router: public browsing plus admin management."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import require_admin
from libs.auth.models import User
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MessageResponse,
    SubcategoryCreate,
)
from services.store_service.services import catalog_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_async_db)):
    """List all categories with their parent and subcategories."""
    return await catalog_ops.list_categories(db)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    return await catalog_ops.get_category(db, category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: CategoryCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a category (admin)."""
    return await catalog_ops.create_category(db, category_in)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a category (admin). Only supplied fields change."""
    return await catalog_ops.update_category(db, category_id, category_in)


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: uuid.UUID,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a category (admin); child categories lose their parent."""
    await catalog_ops.delete_category(db, category_id)
    return MessageResponse(message="Category deleted successfully")


@router.post(
    "/{category_id}/subcategories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_subcategory(
    category_id: uuid.UUID,
    subcategory_in: SubcategoryCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Append a subcategory to a category (admin)."""
    return await catalog_ops.add_subcategory(db, category_id, subcategory_in)
