"""
Database Schemas

Each collection model mirrors a MongoDB collection; the lowercase class name is the
collection name. Input models further down describe exactly the fields a client may send.
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Literal

Role = Literal["admin", "user"]
Category = Literal["office", "kitchen", "bedroom"]
Company = Literal["ikea", "liddy", "marcos"]
OrderStatus = Literal["pending", "failed", "paid", "delivered", "canceled"]

DEFAULT_IMAGE = "/uploads/example.jpeg"


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: Role = Field("user", description="Role: user | admin")


class Product(BaseModel):
    name: str = Field(..., max_length=100)
    price: float = Field(0, ge=0, description="Price in dollars")
    description: str = Field(..., max_length=1000)
    image: str = DEFAULT_IMAGE
    category: Category
    company: Company
    colors: List[str] = Field(default_factory=lambda: ["#222"])
    featured: bool = False
    free_shipping: bool = False
    inventory: int = 15
    average_rating: float = Field(0, ge=0, le=5, description="Derived from reviews")
    num_of_reviews: int = Field(0, ge=0, description="Derived from reviews")
    user_id: str = Field(..., description="Creator")


class Review(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., max_length=100)
    comment: str
    user_id: str
    product_id: str


class OrderItem(BaseModel):
    name: str
    image: str
    price: float
    quantity: int = Field(..., ge=1)
    product_id: str = Field(..., description="Referenced product id")


class Order(BaseModel):
    tax: float
    shipping_fee: float
    subtotal: float
    total: float
    order_items: List[OrderItem]
    status: OrderStatus = "pending"
    user_id: str
    client_secret: str
    payment_intent_id: Optional[str] = None


# Auth input
class RegisterInput(BaseModel):
    # No role field: accounts are always created as "user"
    name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=5)


class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr


class PasswordUpdate(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=5)


# Product input
class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(0, ge=0)
    description: str = Field(..., min_length=1, max_length=1000)
    image: str = DEFAULT_IMAGE
    category: Category
    company: Company
    colors: List[str] = Field(default_factory=lambda: ["#222"])
    featured: bool = False
    free_shipping: bool = False
    inventory: int = Field(15, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    image: Optional[str] = None
    category: Optional[Category] = None
    company: Optional[Company] = None
    colors: Optional[List[str]] = None
    featured: Optional[bool] = None
    free_shipping: Optional[bool] = None
    inventory: Optional[int] = Field(None, ge=0)


# Review input
class ReviewIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=1)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    comment: Optional[str] = Field(None, min_length=1)


# Order input
class CartItem(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class OrderIn(BaseModel):
    tax: float = Field(..., ge=0)
    shipping_fee: float = Field(..., ge=0)
    order_items: List[CartItem] = Field(..., min_length=1)


class OrderPayment(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)
