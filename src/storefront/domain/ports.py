"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

Every backend call raises RequestError (or SessionExpired) on failure;
success values are already parsed into domain models.
"""

from enum import Enum, IntEnum
from typing import Any, Optional, Protocol

from .models import AuthPayload, Cart, OrderConfirmation, ShippingAddress, UserSnapshot


class RegistrationStep(IntEnum):
    """
    Registration flow states.

    Transitions:
    - FORM -> EMAIL_OTP (pending registration created)
    - EMAIL_OTP -> PHONE_OTP (email verified)
    - PHONE_OTP -> SUCCESS (phone verified, session established)
    - EMAIL_OTP/PHONE_OTP -> FORM (session expired or details changed)

    SUCCESS is terminal.
    """

    FORM = 1
    EMAIL_OTP = 2
    PHONE_OTP = 3
    SUCCESS = 4


class OtpChannel(str, Enum):
    """Delivery channel for a one-time code."""

    EMAIL = "email"
    PHONE = "phone"


class RegistrationAPI(Protocol):
    """Port interface for the multi-step registration endpoints."""

    async def register_init(self, name: str, email: str, phone: str, password: str) -> str:
        """
        Create a pending registration and send the email OTP.

        Returns:
            Opaque registrationId for the following steps
        """
        ...

    async def verify_email_otp(self, registration_id: str, otp: str) -> str:
        """
        Verify the email OTP and send the phone OTP.

        Returns:
            Masked phone number for display
        """
        ...

    async def verify_phone_otp(self, registration_id: str, otp: str) -> AuthPayload:
        """Verify the phone OTP and create the account."""
        ...

    async def resend_email_otp(self, registration_id: str) -> None:
        ...

    async def resend_phone_otp(self, registration_id: str) -> None:
        ...


class AuthAPI(Protocol):
    """Port interface for session endpoints."""

    async def login(self, email: str, password: str) -> AuthPayload:
        ...

    async def get_me(self) -> UserSnapshot:
        ...

    async def logout(self) -> None:
        ...


class CartAPI(Protocol):
    """
    Port interface for the cart endpoints.

    Every call returns the backend's full, authoritative cart.
    """

    async def get_cart(self) -> Cart:
        ...

    async def add_item(self, product_id: str, quantity: int) -> Cart:
        ...

    async def update_item(self, product_id: str, quantity: int) -> Cart:
        ...

    async def remove_item(self, product_id: str) -> Cart:
        ...

    async def clear_cart(self) -> Cart:
        ...

    async def apply_coupon(self, code: str) -> tuple[Cart, str]:
        """
        Apply a coupon to the cart.

        Returns:
            Tuple of (cart, server message)
        """
        ...

    async def remove_coupon(self) -> Cart:
        ...


class OrdersAPI(Protocol):
    """Port interface for order placement."""

    async def create_order(
        self,
        shipping_address: ShippingAddress,
        payment_method: str,
        notes: str,
        coupon_code: Optional[str],
    ) -> OrderConfirmation:
        ...


class TokenStore(Protocol):
    """Port interface for persisting the auth token and user snapshot."""

    def load(self) -> tuple[Optional[str], Optional[dict[str, Any]]]:
        """
        Load persisted session.

        Returns:
            Tuple of (token, user dict); (None, None) when nothing is stored
        """
        ...

    def save(self, token: str, user: dict[str, Any]) -> None:
        ...

    def clear(self) -> None:
        ...


class Notifier(Protocol):
    """Port interface for transient user notifications."""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...
