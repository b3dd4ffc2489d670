"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    model_validator,
)
from services.store_service.models import OrderStatus, PaymentStatus

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
LongName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
]
Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
PaymentMethod = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)
]


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# ACCOUNT SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)
    name: Optional[Name] = None
    admin_code: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    is_admin: bool
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class RoleUpdate(BaseModel):
    is_admin: bool


# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class SubcategoryCreate(BaseModel):
    name: Name
    description: Optional[str] = None


class SubcategoryResponse(SubcategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: uuid.UUID
    created_at: datetime


class CategoryCreate(BaseModel):
    name: Name
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None


class CategoryUpdate(BaseModel):
    name: Optional[Name] = None
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    parent: Optional[CategoryRef] = None
    subcategories: list[SubcategoryResponse] = []
    created_at: datetime


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductCreate(BaseModel):
    name: LongName
    description: Text
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(0, ge=0)
    category_id: uuid.UUID
    subcategory_id: Optional[uuid.UUID] = None


class ProductUpdate(BaseModel):
    name: Optional[LongName] = None
    description: Optional[Text] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[uuid.UUID] = None
    subcategory_id: Optional[uuid.UUID] = None


class ProductImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    storage_id: str


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    author_name: Optional[str] = None
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str
    price: Decimal
    stock: int
    category_id: uuid.UUID
    subcategory_id: Optional[uuid.UUID] = None
    category: Optional[CategoryRef] = None
    subcategory: Optional[CategoryRef] = None
    images: list[ProductImageResponse] = []
    rating: float
    review_count: int
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class ProductDetail(ProductResponse):
    reviews: list[ReviewResponse] = []


class ProductListResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Text


class ReviewUpdate(ReviewCreate):
    pass


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class ShippingAddress(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None


class OrderItemCreate(BaseModel):
    """Line item request. Any client-supplied price is ignored."""

    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: list[OrderItemCreate] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    order_status: Optional[OrderStatus] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    items: list[OrderItemResponse]
    total_amount: Decimal
    shipping_address: ShippingAddress
    payment_status: PaymentStatus
    order_status: OrderStatus
    payment_method: str
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(BaseModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None

    @model_validator(mode="after")
    def require_a_status(self):
        if self.order_status is None and self.payment_status is None:
            raise ValueError("order_status or payment_status is required")
        return self
