"""Orders router: checkout, order history and admin status management."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import User
from libs.db.session import get_async_db
from services.store_service.schemas import (
    MessageResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
)
from services.store_service.services import order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_in: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order. Prices and total come from the catalog, not the request."""
    return await order_ops.create_order(db, current_user, order_in)


@router.get("/all", response_model=list[OrderResponse])
async def list_all_orders(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List every order, newest first (admin)."""
    return await order_ops.list_all_orders(db)


@router.get("/my-orders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders, newest first."""
    return await order_ops.list_orders_for_user(db, current_user)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one order; buyers see only their own."""
    return await order_ops.get_order_for_user(db, order_id, current_user)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_in: OrderStatusUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Set payment and/or fulfillment status (admin)."""
    return await order_ops.update_order_status(db, order_id, status_in)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete an order; buyers may delete only their own."""
    await order_ops.delete_order(db, order_id, current_user)
    return MessageResponse(message="Order deleted successfully")
