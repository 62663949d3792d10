"""
In-memory storefront backend for integration tests.

Implements the REST contract the client talks to: staged registration
with email and phone codes, bearer-token sessions, the cart with coupons
and order placement. Codes are logged as ``[OTP]`` lines and also kept on
the state object so tests can read them.
"""

import logging
import secrets
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)

FREE_SHIPPING_THRESHOLD = Decimal("499")
SHIPPING_FEE = Decimal("40")


class BackendError(Exception):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code


@dataclass
class Product:
    id: str
    name: str
    price: int
    stock: int


@dataclass
class Coupon:
    code: str
    discount_type: str
    discount_value: int
    active: bool = True


@dataclass
class PendingRegistration:
    name: str
    email: str
    phone: str
    password: str
    email_otp: str
    phone_otp: str = ""
    email_verified: bool = False


@dataclass
class Account:
    id: str
    name: str
    email: str
    phone: str
    password: str
    role: str = "user"


@dataclass
class StoreState:
    products: dict[str, Product] = field(default_factory=dict)
    coupons: dict[str, Coupon] = field(default_factory=dict)
    registrations: dict[str, PendingRegistration] = field(default_factory=dict)
    accounts: dict[str, Account] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)
    carts: dict[str, dict[str, int]] = field(default_factory=dict)
    applied_coupons: dict[str, str] = field(default_factory=dict)
    orders: list[dict] = field(default_factory=list)

    def expire(self, registration_id: str) -> None:
        self.registrations.pop(registration_id, None)

    def add_account(self, name: str, email: str, phone: str, password: str, role: str = "user") -> Account:
        account = Account(id=f"u{len(self.accounts) + 1}", name=name, email=email, phone=phone, password=password, role=role)
        self.accounts[account.id] = account
        return account


def seeded_state() -> StoreState:
    state = StoreState()
    for product in (
        Product("p1", "Wild Honey 500g", 250, 10),
        Product("p2", "Beeswax Candle", 99, 3),
        Product("p3", "Royal Jelly", 600, 1),
    ):
        state.products[product.id] = product
    for coupon in (
        Coupon("SAVE10", "percentage", 10),
        Coupon("FLAT50", "fixed", 50),
        Coupon("OLD20", "percentage", 20, active=False),
    ):
        state.coupons[coupon.code] = coupon
    return state


class RegisterInitRequest(BaseModel):
    name: str
    email: str
    phone: str
    password: str


class OtpRequest(BaseModel):
    registrationId: str
    otp: str


class ResendRequest(BaseModel):
    registrationId: str


class LoginRequest(BaseModel):
    email: str
    password: str


class CartItemRequest(BaseModel):
    productId: str
    quantity: int = 1


class CouponRequest(BaseModel):
    code: str


class AddressRequest(BaseModel):
    fullName: str
    addressLine1: str
    addressLine2: str = ""
    city: str
    state: str
    zipCode: str
    phone: str


class OrderRequest(BaseModel):
    shippingAddress: AddressRequest
    paymentMethod: str = "cod"
    notes: str = ""
    couponCode: Optional[str] = None


def get_state(request: Request) -> StoreState:
    return request.app.state.store


def current_account(
    authorization: Optional[str] = Header(default=None),
    state: StoreState = Depends(get_state),
) -> Account:
    if not authorization or not authorization.startswith("Bearer "):
        raise BackendError(status.HTTP_401_UNAUTHORIZED, "Not authorized, no token")
    user_id = state.tokens.get(authorization.removeprefix("Bearer "))
    if user_id is None:
        raise BackendError(status.HTTP_401_UNAUTHORIZED, "Not authorized, token failed")
    return state.accounts[user_id]


def user_json(account: Account) -> dict:
    return {"_id": account.id, "name": account.name, "email": account.email, "phone": account.phone, "role": account.role}


def issue_token(state: StoreState, account: Account) -> str:
    token = secrets.token_hex(16)
    state.tokens[token] = account.id
    return token


def new_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def cart_totals(state: StoreState, user_id: str) -> tuple[Decimal, Decimal]:
    lines = state.carts.get(user_id, {})
    subtotal = sum((Decimal(state.products[pid].price) * qty for pid, qty in lines.items()), Decimal("0"))
    discount = Decimal("0")
    code = state.applied_coupons.get(user_id)
    if code:
        coupon = state.coupons[code]
        if coupon.discount_type == "percentage":
            discount = subtotal * coupon.discount_value / 100
        else:
            discount = min(Decimal(coupon.discount_value), subtotal)
    return subtotal, discount


def cart_json(state: StoreState, user_id: str, message: Optional[str] = None) -> dict:
    lines = state.carts.get(user_id, {})
    _, discount = cart_totals(state, user_id)
    code = state.applied_coupons.get(user_id)
    coupon = state.coupons[code] if code else None
    body = {
        "success": True,
        "cart": {
            "_id": f"cart-{user_id}",
            "user": user_id,
            "items": [
                {
                    "product": {
                        "_id": product.id,
                        "name": product.name,
                        "price": product.price,
                        "stock": product.stock,
                    },
                    "quantity": qty,
                    "price": product.price,
                }
                for product, qty in ((state.products[pid], qty) for pid, qty in lines.items())
            ],
            "coupon": (
                {"code": coupon.code, "discountType": coupon.discount_type, "discountValue": coupon.discount_value}
                if coupon
                else None
            ),
            "discount": float(discount),
        },
    }
    if message:
        body["message"] = message
    return body


def require_product(state: StoreState, product_id: str, quantity: int) -> Product:
    product = state.products.get(product_id)
    if product is None:
        raise BackendError(status.HTTP_404_NOT_FOUND, "Product not found")
    if quantity > product.stock:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Not enough stock available")
    return product


auth_router = APIRouter(prefix="/auth")
cart_router = APIRouter(prefix="/cart")
orders_router = APIRouter(prefix="/orders")


@auth_router.post("/register/init", status_code=status.HTTP_201_CREATED)
async def register_init(body: RegisterInitRequest, state: StoreState = Depends(get_state)) -> dict:
    if any(a.email == body.email for a in state.accounts.values()):
        raise BackendError(status.HTTP_400_BAD_REQUEST, "User already exists with this email")
    registration_id = secrets.token_hex(8)
    pending = PendingRegistration(body.name, body.email, body.phone, body.password, email_otp=new_otp())
    state.registrations[registration_id] = pending
    logger.info("[OTP] email=%s code=%s", body.email, pending.email_otp)
    return {"success": True, "message": "OTP sent to your email", "registrationId": registration_id}


def pending_registration(state: StoreState, registration_id: str) -> PendingRegistration:
    pending = state.registrations.get(registration_id)
    if pending is None:
        raise BackendError(
            status.HTTP_400_BAD_REQUEST,
            "Registration session expired. Please start again.",
            code="REGISTRATION_EXPIRED",
        )
    return pending


@auth_router.post("/register/verify-email")
async def verify_email(body: OtpRequest, state: StoreState = Depends(get_state)) -> dict:
    pending = pending_registration(state, body.registrationId)
    if body.otp != pending.email_otp:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Invalid or expired OTP", code="INVALID_OTP")
    pending.email_verified = True
    pending.phone_otp = new_otp()
    logger.info("[OTP] phone=%s code=%s", pending.phone, pending.phone_otp)
    return {"success": True, "message": "Email verified", "phone": "******" + pending.phone[-4:]}


@auth_router.post("/register/verify-phone", status_code=status.HTTP_201_CREATED)
async def verify_phone(body: OtpRequest, state: StoreState = Depends(get_state)) -> dict:
    pending = pending_registration(state, body.registrationId)
    if not pending.email_verified:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Please verify your email first")
    if body.otp != pending.phone_otp:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Invalid or expired OTP", code="INVALID_OTP")
    del state.registrations[body.registrationId]
    account = state.add_account(pending.name, pending.email, pending.phone, pending.password)
    return {"success": True, "token": issue_token(state, account), "user": user_json(account)}


@auth_router.post("/register/resend-email-otp")
async def resend_email_otp(body: ResendRequest, state: StoreState = Depends(get_state)) -> dict:
    pending = pending_registration(state, body.registrationId)
    pending.email_otp = new_otp()
    logger.info("[OTP] email=%s code=%s", pending.email, pending.email_otp)
    return {"success": True, "message": "OTP resent"}


@auth_router.post("/register/resend-phone-otp")
async def resend_phone_otp(body: ResendRequest, state: StoreState = Depends(get_state)) -> dict:
    pending = pending_registration(state, body.registrationId)
    pending.phone_otp = new_otp()
    logger.info("[OTP] phone=%s code=%s", pending.phone, pending.phone_otp)
    return {"success": True, "message": "OTP resent"}


@auth_router.post("/login")
async def login(body: LoginRequest, state: StoreState = Depends(get_state)) -> dict:
    for account in state.accounts.values():
        if account.email == body.email and account.password == body.password:
            return {"success": True, "token": issue_token(state, account), "user": user_json(account)}
    raise BackendError(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")


@auth_router.get("/me")
async def me(account: Account = Depends(current_account)) -> dict:
    return {"success": True, "user": user_json(account)}


@auth_router.post("/logout")
async def logout(
    authorization: str = Header(),
    account: Account = Depends(current_account),
    state: StoreState = Depends(get_state),
) -> dict:
    state.tokens.pop(authorization.removeprefix("Bearer "), None)
    return {"success": True, "message": "Logged out"}


@cart_router.get("")
async def get_cart(account: Account = Depends(current_account), state: StoreState = Depends(get_state)) -> dict:
    return cart_json(state, account.id)


@cart_router.post("/add")
async def add_to_cart(
    body: CartItemRequest, account: Account = Depends(current_account), state: StoreState = Depends(get_state)
) -> dict:
    lines = state.carts.setdefault(account.id, {})
    quantity = lines.get(body.productId, 0) + body.quantity
    require_product(state, body.productId, quantity)
    lines[body.productId] = quantity
    return cart_json(state, account.id)


@cart_router.put("/update")
async def update_cart(
    body: CartItemRequest, account: Account = Depends(current_account), state: StoreState = Depends(get_state)
) -> dict:
    lines = state.carts.setdefault(account.id, {})
    if body.productId not in lines:
        raise BackendError(status.HTTP_404_NOT_FOUND, "Item not found in cart")
    require_product(state, body.productId, body.quantity)
    lines[body.productId] = body.quantity
    return cart_json(state, account.id)


@cart_router.delete("/remove/{product_id}")
async def remove_from_cart(
    product_id: str, account: Account = Depends(current_account), state: StoreState = Depends(get_state)
) -> dict:
    state.carts.setdefault(account.id, {}).pop(product_id, None)
    return cart_json(state, account.id)


@cart_router.delete("/clear")
async def clear_cart(account: Account = Depends(current_account), state: StoreState = Depends(get_state)) -> dict:
    state.carts[account.id] = {}
    state.applied_coupons.pop(account.id, None)
    return cart_json(state, account.id)


@cart_router.post("/apply-coupon")
async def apply_coupon(
    body: CouponRequest, account: Account = Depends(current_account), state: StoreState = Depends(get_state)
) -> dict:
    coupon = state.coupons.get(body.code.upper())
    if coupon is None:
        raise BackendError(status.HTTP_404_NOT_FOUND, "Invalid coupon code")
    if not coupon.active:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Coupon is expired or no longer valid")
    state.applied_coupons[account.id] = coupon.code
    return cart_json(state, account.id, message="Coupon applied successfully")


@cart_router.delete("/remove-coupon")
async def remove_coupon(account: Account = Depends(current_account), state: StoreState = Depends(get_state)) -> dict:
    state.applied_coupons.pop(account.id, None)
    return cart_json(state, account.id)


@orders_router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderRequest, account: Account = Depends(current_account), state: StoreState = Depends(get_state)
) -> dict:
    lines = state.carts.get(account.id, {})
    if not lines:
        raise BackendError(status.HTTP_400_BAD_REQUEST, "Your cart is empty")
    for pid, qty in lines.items():
        require_product(state, pid, qty)

    subtotal, discount = cart_totals(state, account.id)
    shipping = Decimal("0") if subtotal >= FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    order = {
        "_id": f"o{len(state.orders) + 1}",
        "orderNumber": f"ORD-{len(state.orders) + 1:05d}",
        "total": float(subtotal - discount + shipping),
        "couponCode": body.couponCode,
        "paymentMethod": body.paymentMethod,
        "shippingAddress": body.shippingAddress.model_dump(),
    }
    state.orders.append(order)
    for pid, qty in lines.items():
        state.products[pid].stock -= qty
    state.carts[account.id] = {}
    state.applied_coupons.pop(account.id, None)
    return {"success": True, "order": order}


def create_app(state: Optional[StoreState] = None) -> FastAPI:
    app = FastAPI(title="Fake storefront backend")
    app.state.store = state or seeded_state()

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
        content = {"success": False, "message": exc.message}
        if exc.code:
            content["code"] = exc.code
        return JSONResponse(status_code=exc.status_code, content=content)

    for router in (auth_router, cart_router, orders_router):
        app.include_router(router, prefix="/api")
    return app
