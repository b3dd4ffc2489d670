"""Order ledger: server-side pricing, snapshots, status changes and visibility."""

import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Mapping

from libs.auth.models import User
from libs.common.exceptions import (
    Conflict,
    Forbidden,
    InvalidReference,
    NotFound,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.store_service.models import Order, OrderItem, OrderStatus, Product
from services.store_service.schemas import OrderCreate, OrderStatusUpdate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def price(
    unit_prices: Mapping[uuid.UUID, Decimal], product_id: uuid.UUID, quantity: int
) -> Decimal:
    """Line amount for ``quantity`` units of ``product_id`` at its catalog price."""
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1")
    try:
        unit_price = unit_prices[product_id]
    except KeyError:
        raise InvalidReference(f"Invalid product ID {product_id}") from None
    return unit_price * quantity


def ensure_order_access(order: Order, user: User) -> None:
    """Buyers see their own orders; admins see every order."""
    if user.is_admin or order.user_id == user.id:
        return
    raise Forbidden("Not authorized")


async def _load_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


async def get_order_for_user(db: AsyncSession, order_id: uuid.UUID, user: User) -> Order:
    order = await _load_order(db, order_id)
    ensure_order_access(order, user)
    return order


async def create_order(db: AsyncSession, buyer: User, data: OrderCreate) -> Order:
    """Create an order priced from the live catalog.

    Unit prices are copied onto the line items and never recomputed.
    """
    requested: dict[uuid.UUID, int] = defaultdict(int)
    for item in data.items:
        requested[item.product_id] += item.quantity

    result = await db.execute(
        select(Product).where(Product.id.in_(requested.keys())).with_for_update()
    )
    products = {product.id: product for product in result.scalars().all()}
    unit_prices = {product_id: product.price for product_id, product in products.items()}

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is not None and quantity > product.stock:
            raise Conflict(f"Insufficient stock for {product.name}")

    items = []
    for item in data.items:
        line_total = price(unit_prices, item.product_id, item.quantity)
        items.append(
            OrderItem(
                product_id=item.product_id,
                product_name=products[item.product_id].name,
                quantity=item.quantity,
                unit_price=unit_prices[item.product_id],
                line_total=line_total,
            )
        )

    order = Order(
        user_id=buyer.id,
        items=items,
        total_amount=sum((item.line_total for item in items), Decimal("0")),
        shipping_address=data.shipping_address.model_dump(),
        payment_method=data.payment_method,
        order_status=data.order_status or OrderStatus.PROCESSING,
    )
    db.add(order)
    await db.commit()

    logger.info(
        "Order %s created by %s: %d items, total %s",
        order.id,
        buyer.id,
        len(items),
        order.total_amount,
    )
    return await _load_order(db, order.id)


async def list_orders_for_user(db: AsyncSession, user: User) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user.id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_all_orders(db: AsyncSession) -> list[Order]:
    result = await db.execute(
        select(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def update_order_status(
    db: AsyncSession, order_id: uuid.UUID, data: OrderStatusUpdate
) -> Order:
    """Set payment and/or fulfillment status.

    The two statuses are independent and no transition order is enforced.
    """
    order = await _load_order(db, order_id)
    old = (order.payment_status, order.order_status)

    if data.order_status is not None:
        order.order_status = data.order_status
    if data.payment_status is not None:
        order.payment_status = data.payment_status
    await db.commit()

    logger.info(
        "Order %s status %s/%s -> %s/%s",
        order.id,
        old[0].value,
        old[1].value,
        order.payment_status.value,
        order.order_status.value,
    )
    return await _load_order(db, order.id)


async def delete_order(db: AsyncSession, order_id: uuid.UUID, user: User) -> None:
    order = await get_order_for_user(db, order_id, user)
    await db.delete(order)
    await db.commit()
    logger.info("Order %s deleted by %s", order_id, user.id)
