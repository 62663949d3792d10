"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Mocked backend ports and notifier
- In-memory token storage and an AuthSession built on it
- Cart factories producing backend-shaped domain carts
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

from storefront.adapters.storage import MemoryTokenStore
from storefront.domain.ports import AuthAPI
from storefront.domain.models import Cart, CartItem, Coupon, ProductRef, UserSnapshot
from storefront.domain.session import AuthSession

CartFactory = Callable[..., Cart]


@pytest.fixture
def notifier() -> Mock:
    """Notifier double recording success/error calls."""
    return Mock(spec=["success", "error"])


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def auth_api() -> AsyncMock:
    return AsyncMock(spec=AuthAPI)


@pytest.fixture
def session(auth_api: AsyncMock, token_store: MemoryTokenStore, notifier: Mock) -> AuthSession:
    return AuthSession(api=auth_api, store=token_store, notifier=notifier)


@pytest.fixture
def user() -> UserSnapshot:
    return UserSnapshot(id="u1", name="Asha", email="asha@example.com", phone="9876543210")


@pytest.fixture
def make_cart() -> CartFactory:
    """
    Build a cart from (product_id, price, quantity) tuples.

    Example:
        make_cart(("p1", 100, 2), discount=10)
    """

    def factory(*lines: tuple[str, int, int], coupon: Optional[Coupon] = None, discount: int = 0) -> Cart:
        items = tuple(
            CartItem(product=ProductRef(id=pid, name=f"Product {pid}", price=Decimal(price)), quantity=qty)
            for pid, price, qty in lines
        )
        return Cart(items=items, coupon=coupon, discount=Decimal(discount))

    return factory
