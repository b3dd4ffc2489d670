"""Review router. Every mutation also rewrites the product's aggregate rating."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import User
from libs.db.session import get_async_db
from services.store_service.schemas import (
    MessageResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from services.store_service.services import review_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/products/{product_id}/reviews", tags=["reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def add_review(
    product_id: uuid.UUID,
    review_in: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add the caller's review; one review per user and product."""
    return await review_ops.add_review(db, product_id, current_user, review_in)


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    product_id: uuid.UUID,
    review_id: uuid.UUID,
    review_in: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a review (author or admin)."""
    return await review_ops.update_review(
        db, product_id, review_id, current_user, review_in
    )


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    product_id: uuid.UUID,
    review_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a review (author or admin)."""
    await review_ops.delete_review(db, product_id, review_id, current_user)
    return MessageResponse(message="Review deleted successfully")
