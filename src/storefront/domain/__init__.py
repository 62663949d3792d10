"""
Domain layer - Client-side state machines with zero framework imports.

This package contains the registration flow and cart synchronisation
logic together with the session they share. It defines its own port
interfaces for the backend, token storage and notifications.
"""

from .cart import CartSyncController, compute_totals
from .checkout import CheckoutService
from .exceptions import (
    RequestError,
    SessionExpired,
    StorefrontError,
    Unauthenticated,
    ValidationError,
)
from .models import ActionResult, Cart, CartItem, CartTotals, Coupon, ProductRef, RegistrationDraft
from .ports import OtpChannel, RegistrationStep
from .registration import RegistrationFlow
from .session import AuthSession

__all__ = [
    "ActionResult",
    "AuthSession",
    "Cart",
    "CartItem",
    "CartSyncController",
    "CartTotals",
    "CheckoutService",
    "Coupon",
    "OtpChannel",
    "ProductRef",
    "RegistrationDraft",
    "RegistrationFlow",
    "RegistrationStep",
    "RequestError",
    "SessionExpired",
    "StorefrontError",
    "Unauthenticated",
    "ValidationError",
    "compute_totals",
]
