"""
Domain models - Plain data carried between the core and its adapters.

Dataclasses only; wire parsing lives in the HTTP adapter.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from .exceptions import StorefrontError


@dataclass
class RegistrationDraft:
    """Signup form values entered in step 1."""

    name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""
    confirm_password: str = ""


@dataclass(frozen=True)
class UserSnapshot:
    """User as returned by the backend on login or registration."""

    id: str
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserSnapshot":
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            name=data.get("name") or "",
            email=data.get("email") or "",
            phone=data.get("phone"),
            role=data.get("role") or "user",
        )


@dataclass(frozen=True)
class AuthPayload:
    """Token plus user snapshot issued by a successful authentication."""

    token: str
    user: UserSnapshot


@dataclass(frozen=True)
class ProductRef:
    """Product as embedded in a cart line."""

    id: str
    name: str = ""
    price: Decimal = Decimal("0")
    stock: Optional[int] = None


@dataclass(frozen=True)
class CartItem:
    product: ProductRef
    quantity: int
    price: Optional[Decimal] = None  # Line price captured server-side

    @property
    def unit_price(self) -> Decimal:
        """The backend prices lines from the stored, already discounted price."""
        if self.price is not None:
            return self.price
        return self.product.price


@dataclass(frozen=True)
class Coupon:
    code: str
    discount_type: str  # "percentage" or "fixed"
    discount_value: Decimal


@dataclass(frozen=True)
class Cart:
    """Server-owned cart, replaced wholesale on every sync."""

    items: tuple[CartItem, ...] = ()
    coupon: Optional[Coupon] = None
    discount: Decimal = Decimal("0")  # Backend total discount, never recomputed

    @classmethod
    def empty(cls) -> "Cart":
        return cls()


@dataclass(frozen=True)
class CartTotals:
    """Display totals derived from a Cart."""

    items_count: int = 0
    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    free_shipping_remaining: Decimal = Decimal("0")


@dataclass(frozen=True)
class ShippingAddress:
    full_name: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""


@dataclass(frozen=True)
class OrderConfirmation:
    id: str
    order_number: Optional[str] = None
    total: Optional[Decimal] = None


@dataclass
class ActionResult:
    """
    Outcome of a controller operation.

    Controllers never raise request failures to their callers; they
    return one of these after notifying the user.
    """

    success: bool
    message: str = ""
    error: Optional[StorefrontError] = None
    field_errors: dict[str, str] = field(default_factory=dict)
    value: Any = None

    @classmethod
    def ok(cls, message: str = "", value: Any = None) -> "ActionResult":
        return cls(success=True, message=message, value=value)

    @classmethod
    def failed(cls, error: StorefrontError, message: str) -> "ActionResult":
        field_errors = getattr(error, "field_errors", {})
        return cls(success=False, message=message, error=error, field_errors=dict(field_errors))
