"""
Request schemas for the back-office API

Each document collection has an input model here. Structural checks (types,
required fields) live on the models; business rules with user-facing messages
(voucher codes, province names, transition rules) are enforced by the services
so they apply no matter who calls them.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field

OrderStatus = Literal["pending", "processing", "shipped", "completed", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed"]
VoucherType = Literal["percentage", "flat"]
NotificationType = Literal["order", "payment", "stock"]
TShirtSize = Literal["S", "M", "L", "XL", "XXL", "XXXL"]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# Catalog

class VariantIn(BaseModel):
    name: str
    sku: str
    price: float = Field(..., ge=0)
    stock: int = 0


class ProductCreate(BaseModel):
    title: str
    description: str = ""
    images: List[str] = Field(default_factory=list)
    price: float = Field(..., ge=0)
    category_id: str
    stock: int = 0
    variants: Optional[List[VariantIn]] = None


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    variants: Optional[List[VariantIn]] = None


class StockUpdate(BaseModel):
    stock: int


class ImageRemoval(BaseModel):
    url: str


class CategoryIn(BaseModel):
    title: str


# Orders

class ShippingAddress(BaseModel):
    province_id: str
    province_name: str
    full_address: str
    postal_code: str


class OrderItemIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    user_id: str
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: str
    voucher_code: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    external_id: Optional[str] = None


# Promotions

class VoucherIn(BaseModel):
    code: str
    type: VoucherType
    value: float = Field(..., allow_inf_nan=False)
    min_purchase: float = Field(0, allow_inf_nan=False)
    valid_until: Optional[datetime] = None
    is_active: bool = True


class VoucherUpdate(BaseModel):
    code: Optional[str] = None
    type: Optional[VoucherType] = None
    value: Optional[float] = Field(None, allow_inf_nan=False)
    min_purchase: Optional[float] = Field(None, allow_inf_nan=False)
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class LogisticsRateIn(BaseModel):
    name: str
    price: float = Field(..., allow_inf_nan=False)


# Notifications

class NotificationIn(BaseModel):
    type: NotificationType
    title: str
    message: str


# TV CMS

class TvCategoryIn(BaseModel):
    title: str
    order: int


class TvCategoryUpdate(BaseModel):
    title: Optional[str] = None
    order: Optional[int] = None


class TvContentIn(BaseModel):
    title: str
    image: str
    link: str


class TvContentUpdate(BaseModel):
    title: Optional[str] = None
    image: Optional[str] = None
    link: Optional[str] = None


# Events

class FantasyIn(BaseModel):
    title: str
    address: str
    schedule: datetime
    venue: str
    notes: str = ""
    international: bool = False
    registration_fee: float = Field(..., ge=0)
    created_by: Optional[str] = None


class FantasyUpdate(BaseModel):
    title: Optional[str] = None
    address: Optional[str] = None
    schedule: Optional[datetime] = None
    venue: Optional[str] = None
    notes: Optional[str] = None
    international: Optional[bool] = None
    registration_fee: Optional[float] = Field(None, ge=0)


class TShirt(BaseModel):
    id: str
    size: TShirtSize
    image: str


class TeamIn(BaseModel):
    name: str
    description: str = ""
    tshirts: List[TShirt] = Field(default_factory=list)
    fantasy_id: str


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tshirts: Optional[List[TShirt]] = None
    fantasy_id: Optional[str] = None


class ShoeIn(BaseModel):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    size: float
    images: List[str] = Field(default_factory=list)
    fantasy_id: str


class ShoeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    size: Optional[float] = None
    images: Optional[List[str]] = None
    fantasy_id: Optional[str] = None


# Uploads

class UploadRequest(BaseModel):
    file_name: str = Field(..., validation_alias=AliasChoices("file_name", "fileName"))
    content: str = Field(..., validation_alias=AliasChoices("content", "file_content", "fileContent"))
    content_type: str = Field(..., validation_alias=AliasChoices("content_type", "contentType"))
