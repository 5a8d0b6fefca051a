"""
Request and response schemas for the e-commerce API

Request models validate incoming JSON bodies; the *Out models are built
from the SQLAlchemy rows in models.py (from_attributes) and shape the
JSON returned to clients:
- User -> UserOut (the password hash is never exposed)
- Address -> AddressOut
- Product -> ProductOut
- Order -> OrderOut (with its user, address and order items)
"""

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from models import MAX_INTEGER


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without their zone; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CustomerRegistrationRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address, unique across users")
    first_name: str = Field(..., min_length=1, description="First name")
    last_name: str = Field(..., min_length=1, description="Last name")
    password: str = Field(..., min_length=6, description="Plain-text password")
    password_confirm: str = Field(..., min_length=6, description="Must repeat password")


class AdminRegistrationRequest(CustomerRegistrationRequest):
    secret_key: str = Field(..., min_length=1, description="Shared secret required for admin accounts")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class CreateAddressRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1, max_length=50)
    country: str = Field(..., min_length=1, max_length=50)
    zip_code: str = Field(..., min_length=1, max_length=15)
    street_address: str = Field(..., min_length=1)


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Free-form description")
    price: float = Field(..., gt=0, description="Unit price")
    stock: int = Field(..., ge=0, le=MAX_INTEGER, description="Units in stock")
    category: str = Field(..., min_length=1, description="Category name")


class PatchProductRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0, le=MAX_INTEGER)
    category: Optional[str] = Field(None, min_length=1)


class OrderItemRequest(BaseModel):
    product_id: int = Field(..., gt=0, le=MAX_INTEGER, description="Product identifier")
    quantity: int = Field(..., le=MAX_INTEGER, description="Units ordered, must be positive")


class CreateOrderRequest(BaseModel):
    address_id: int = Field(..., gt=0, le=MAX_INTEGER, description="Delivery address of the caller")
    order_items: List[OrderItemRequest] = Field(..., min_length=1, description="Line items")


class UpdateOrderStatusRequest(BaseModel):
    status: str = Field(..., description="pending | completed | cancelled")


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: UtcDatetime
    updated_at: UtcDatetime


class UserOut(OrmModel):
    email: str
    first_name: str
    last_name: str
    role: str
    last_login: Optional[UtcDatetime] = None


class AddressOut(OrmModel):
    first_name: str
    last_name: str
    city: str
    country: str
    zip_code: str
    street_address: str
    user_id: int


class ProductOut(OrmModel):
    name: str
    category: str
    description: str
    price: float
    stock: int


class OrderItemOut(OrmModel):
    order_id: int
    product_id: int
    price: float
    quantity: int


class OrderOut(OrmModel):
    user: UserOut
    address: Optional[AddressOut] = None
    total: float
    status: str
    order_items: List[OrderItemOut] = []


class AuthResponse(BaseModel):
    msg: str
    user: UserOut
    access_token: str = ""
    refresh_token: str = ""


class PageOut(BaseModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int


class ProductListResponse(PageOut):
    products: List[ProductOut]


class OrderListResponse(PageOut):
    orders: List[OrderOut]
