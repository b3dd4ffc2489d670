"""Review operations with the product rating kept in step.

Every mutation follows the same shape:

1. SELECT FOR UPDATE on the product row (serializes concurrent reviewers)
2. Validate access / uniqueness
3. Write the review
4. Recompute ``rating`` and ``review_count`` from the stored reviews
5. Commit review and aggregate together
"""

import uuid
from typing import Iterable

from libs.auth.models import User
from libs.common.exceptions import Conflict, Forbidden, NotFound
from libs.common.logging import get_logger
from services.store_service.models import Product, Review
from services.store_service.schemas import ReviewCreate, ReviewUpdate
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def compute_rating(ratings: Iterable[int]) -> float:
    """Arithmetic mean of ``ratings``, or exactly 0.0 when there are none."""
    values = list(ratings)
    if not values:
        return 0.0
    return sum(values) / len(values)


async def _lock_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


async def _refresh_aggregate(db: AsyncSession, product: Product) -> None:
    await db.flush()
    result = await db.execute(
        select(Review.rating).where(Review.product_id == product.id)
    )
    ratings = list(result.scalars().all())
    product.rating = compute_rating(ratings)
    product.review_count = len(ratings)


async def _get_review(
    db: AsyncSession, product_id: uuid.UUID, review_id: uuid.UUID
) -> Review:
    result = await db.execute(
        select(Review).where(Review.id == review_id, Review.product_id == product_id)
    )
    review = result.scalar_one_or_none()
    if not review:
        raise NotFound("Review not found")
    return review


async def _load_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    result = await db.execute(
        select(Review)
        .where(Review.id == review_id)
        .options(selectinload(Review.author))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def ensure_review_access(review: Review, user: User) -> None:
    """Only the author or an admin may change a review."""
    if user.is_admin or review.user_id == user.id:
        return
    raise Forbidden("Not authorized to modify this review")


async def add_review(
    db: AsyncSession, product_id: uuid.UUID, user: User, data: ReviewCreate
) -> Review:
    product = await _lock_product(db, product_id)

    existing = await db.execute(
        select(Review.id).where(
            Review.product_id == product.id, Review.user_id == user.id
        )
    )
    if existing.first():
        raise Conflict("You have already reviewed this product")

    review = Review(
        product_id=product.id,
        user_id=user.id,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    try:
        await _refresh_aggregate(db, product)
        await db.commit()
    except IntegrityError as exc:
        # A concurrent insert slipped past the check on a store without row locks
        await db.rollback()
        raise Conflict("You have already reviewed this product") from exc

    logger.info(
        "Review %s added to product %s (rating now %.2f over %d)",
        review.id,
        product.id,
        product.rating,
        product.review_count,
    )
    return await _load_review(db, review.id)


async def update_review(
    db: AsyncSession,
    product_id: uuid.UUID,
    review_id: uuid.UUID,
    user: User,
    data: ReviewUpdate,
) -> Review:
    product = await _lock_product(db, product_id)
    review = await _get_review(db, product.id, review_id)
    ensure_review_access(review, user)

    review.rating = data.rating
    review.comment = data.comment
    await _refresh_aggregate(db, product)
    await db.commit()

    logger.info("Review %s updated on product %s", review.id, product.id)
    return await _load_review(db, review.id)


async def delete_review(
    db: AsyncSession, product_id: uuid.UUID, review_id: uuid.UUID, user: User
) -> None:
    product = await _lock_product(db, product_id)
    review = await _get_review(db, product.id, review_id)
    ensure_review_access(review, user)

    await db.delete(review)
    await _refresh_aggregate(db, product)
    await db.commit()

    logger.info("Review %s deleted from product %s", review_id, product.id)
