# dreamknot/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Literal
from decimal import Decimal
from datetime import datetime


OrderStatus = Literal["pending", "processing", "in_production", "shipped", "delivered", "cancelled"]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Schema for creating a user."""

    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    role: Literal["customer", "staff", "admin"] = "customer"


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    phone: str | None = Field(None, max_length=20)


class ProfileOut(UserRead):
    phone: str | None = None
    created_at: datetime
    order_count: int
    review_count: int
    address_count: int


class RoleUpdate(BaseModel):
    user_id: int = Field(..., gt=0)
    role: Literal["customer", "staff", "admin"]


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class CategoryOut(BaseModel):
    id: int
    name: str
    created_at: str | None = None


class ProductOut(BaseModel):
    """Product as read from the catalog CMS."""

    id: int
    title: str
    description: str | None = None
    price: Decimal
    category: CategoryOut | None = None
    images: List[str] = []
    created_at: str | None = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


class CartItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0)
    customization: Dict[str, Any] | None = None
    qty: int = Field(1, description="Quantity to add, merged into an identical line")


class CartItemUpdate(BaseModel):
    """A quantity of zero or less removes the line."""

    qty: int


class CartItemOut(BaseModel):
    id: int
    product: ProductOut
    customization: str | None = None
    qty: int
    price: Decimal


class CartOut(BaseModel):
    id: int | None
    items: List[CartItemOut]
    total: Decimal


class CountOut(BaseModel):
    count: int


# ---------------------------------------------------------------------------
# Discount codes
# ---------------------------------------------------------------------------


class DiscountValidateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    order_total: Decimal = Field(..., ge=0)


class DiscountValidateOut(BaseModel):
    valid: bool
    discount: Decimal


class DiscountCodeCreate(BaseModel):
    """Schema for creating a discount code (admin)."""

    code: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    discount_type: Literal["percentage", "fixed"]
    discount_value: Decimal = Field(..., gt=0)
    minimum_order: Decimal | None = Field(None, ge=0)
    maximum_discount: Decimal | None = Field(None, gt=0)
    usage_limit: int | None = Field(None, gt=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None


class DiscountCodeUpdate(BaseModel):
    description: str | None = None
    discount_type: Literal["percentage", "fixed"] | None = None
    discount_value: Decimal | None = Field(None, gt=0)
    minimum_order: Decimal | None = Field(None, ge=0)
    maximum_discount: Decimal | None = Field(None, gt=0)
    usage_limit: int | None = Field(None, gt=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool | None = None


class DiscountCodeOut(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Decimal
    minimum_order: Decimal | None = None
    maximum_discount: Decimal | None = None
    usage_limit: int | None = None
    usage_count: int
    is_active: bool
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Orders & payments
# ---------------------------------------------------------------------------


class Address(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address_line_1: str = Field(..., min_length=1)
    address_line_2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str


class OrderCreate(BaseModel):
    """Checkout without online payment; the order stays payment-pending."""

    shipping_address: Address
    billing_address: Address
    discount_code: str | None = None


class PaymentOrderCreate(BaseModel):
    discount_code: str | None = None
    discount_amount: Decimal | None = Field(None, ge=0)


class PaymentOrderOut(BaseModel):
    order_id: str
    amount: int
    currency: str
    key: str


class PaymentVerifyIn(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    shipping_address: Address
    billing_address: Address
    discount_code: str | None = None
    discount_amount: Decimal | None = Field(None, ge=0)


class OrderOut(BaseModel):
    id: int
    total_amount: Decimal
    order_status: str
    payment_status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    id: int
    product: ProductOut
    customization: str | None = None
    qty: int
    price: Decimal


class OrderDetailOut(OrderOut):
    user_id: int
    discount_code: str | None = None
    discount_amount: Decimal
    shipping_address: Dict[str, Any]
    billing_address: Dict[str, Any]
    items: List[OrderItemOut]


class OrderStatusUpdate(BaseModel):
    order_status: OrderStatus


class BulkStatusUpdate(BaseModel):
    order_ids: List[int] = Field(..., min_length=1)
    status: OrderStatus


class BulkStatusOut(BaseModel):
    updated_count: int
    status: str


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class ReviewCreate(BaseModel):
    # range is checked by the service so the error carries the field name
    rating: int
    title: str | None = Field(None, max_length=200)
    comment: str | None = None


class ReviewUpdate(BaseModel):
    rating: int | None = None
    title: str | None = Field(None, max_length=200)
    comment: str | None = None


class ReviewOut(BaseModel):
    id: int
    user_id: int
    product_id: int
    rating: int
    title: str | None = None
    comment: str | None = None
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewStats(BaseModel):
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[int, int]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ReviewPage(BaseModel):
    reviews: List[ReviewOut]
    pagination: Pagination
    stats: ReviewStats


# ---------------------------------------------------------------------------
# Wishlist
# ---------------------------------------------------------------------------


class WishlistIn(BaseModel):
    product_id: int = Field(..., gt=0)


class WishlistItemOut(BaseModel):
    id: int
    product: ProductOut
    added_at: datetime


class WishlistOut(BaseModel):
    wishlist: List[WishlistItemOut]


class WishlistToggleOut(BaseModel):
    added: bool


class MessageOut(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Saved addresses
# ---------------------------------------------------------------------------


class AddressIn(BaseModel):
    # required fields are checked by the service so a blank one is a 400
    name: str | None = None
    phone: str | None = Field(None, max_length=20)
    address_line: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = None
    is_default: bool = False


class AddressOut(BaseModel):
    id: int
    user_id: int
    name: str
    phone: str | None = None
    address_line: str
    city: str
    state: str
    zip: str
    country: str
    is_default: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AddressList(BaseModel):
    addresses: List[AddressOut]


# ---------------------------------------------------------------------------
# Admin: customers and reports
# ---------------------------------------------------------------------------


class CustomerOut(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None = None
    role: str
    created_at: datetime
    order_count: int
    review_count: int
    address_count: int
    total_spent: Decimal
    last_order_date: datetime | None = None


class CustomerPage(BaseModel):
    customers: List[CustomerOut]
    pagination: Pagination


class CustomersReport(BaseModel):
    customers: List[CustomerOut]


class OverviewSummary(BaseModel):
    total_orders: int
    total_revenue: Decimal
    total_customers: int


class StatusCount(BaseModel):
    status: str
    count: int


class OverviewReport(BaseModel):
    summary: OverviewSummary
    order_status_breakdown: List[StatusCount]
    recent_orders: List[OrderOut]


class DailySales(BaseModel):
    date: str
    orders_count: int
    revenue: Decimal
    avg_order_value: Decimal


class TopProduct(BaseModel):
    product_id: int
    product_name: str
    total_sold: int
    order_count: int
    revenue: Decimal


class SalesReport(BaseModel):
    daily_sales: List[DailySales]
    top_products: List[TopProduct]


class ProductStats(BaseModel):
    id: int
    title: str
    category: str | None = None
    base_price: Decimal
    total_sold: int
    total_revenue: Decimal
    review_count: int
    average_rating: float


class ProductsReport(BaseModel):
    products: List[ProductStats]
