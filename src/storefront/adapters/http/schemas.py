"""
Backend response models.

Pydantic models validating the JSON the storefront API returns, and
converting it into domain dataclasses. Unknown fields are ignored.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from storefront.domain.models import (
    AuthPayload,
    Cart,
    CartItem,
    Coupon,
    OrderConfirmation,
    ProductRef,
    UserSnapshot,
)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProductSchema(WireModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    price: Decimal = Decimal("0")
    stock: Optional[int] = None

    def to_domain(self) -> ProductRef:
        return ProductRef(id=self.id, name=self.name, price=self.price, stock=self.stock)


class CartItemSchema(WireModel):
    product: ProductSchema
    quantity: int = Field(ge=1)
    price: Optional[Decimal] = None

    @field_validator("product", mode="before")
    @classmethod
    def unpopulated_product(cls, value: Any) -> Any:
        """An unpopulated reference arrives as a bare id."""
        if isinstance(value, str):
            return {"_id": value}
        return value

    def to_domain(self) -> CartItem:
        return CartItem(product=self.product.to_domain(), quantity=self.quantity, price=self.price)


class CouponSchema(WireModel):
    code: str
    discount_type: str = Field(default="fixed", validation_alias=AliasChoices("discountType", "discount_type"))
    discount_value: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("discountValue", "discount_value")
    )

    def to_domain(self) -> Coupon:
        return Coupon(code=self.code, discount_type=self.discount_type, discount_value=self.discount_value)


class CartSchema(WireModel):
    items: list[CartItemSchema] = []
    coupon: Optional[CouponSchema] = None
    discount: Decimal = Decimal("0")
    coupon_code: Optional[str] = Field(default=None, validation_alias="couponCode")
    coupon_discount: Decimal = Field(default=Decimal("0"), validation_alias="couponDiscount")

    def to_domain(self) -> Cart:
        """
        Build the domain cart.

        The backend subtracts both ``discount`` and ``couponDiscount``, so
        they are folded into one figure. A bare ``couponCode`` becomes a
        fixed coupon worth the applied amount.
        """
        coupon = self.coupon.to_domain() if self.coupon else None
        if coupon is None and self.coupon_code:
            coupon = Coupon(code=self.coupon_code, discount_type="fixed", discount_value=self.coupon_discount)
        return Cart(
            items=tuple(item.to_domain() for item in self.items),
            coupon=coupon,
            discount=self.discount + self.coupon_discount,
        )


class CartResponse(WireModel):
    cart: CartSchema
    message: str = ""


class UserSchema(WireModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    role: str = "user"

    def to_domain(self) -> UserSnapshot:
        return UserSnapshot(id=self.id, name=self.name, email=self.email, phone=self.phone, role=self.role)


class AuthResponse(WireModel):
    token: str
    user: UserSchema

    def to_domain(self) -> AuthPayload:
        return AuthPayload(token=self.token, user=self.user.to_domain())


class MeResponse(WireModel):
    user: UserSchema


class RegisterInitResponse(WireModel):
    registration_id: str = Field(validation_alias="registrationId")


class VerifyEmailResponse(WireModel):
    phone: str = ""


class OrderSchema(WireModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    order_number: Optional[str] = Field(default=None, validation_alias="orderNumber")
    total: Optional[Decimal] = None

    def to_domain(self) -> OrderConfirmation:
        return OrderConfirmation(id=self.id, order_number=self.order_number, total=self.total)


class OrderResponse(WireModel):
    order: OrderSchema
