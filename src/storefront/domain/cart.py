"""
Cart synchronisation - Single source of truth for the user's cart.

The local cart is never mutated in place. Every operation asks the
backend and replaces the whole cart with the response.

Ordering: each request takes a sequence number when it is issued. A
response is applied only if its number is higher than that of the last
applied response and the auth epoch has not moved since it was issued.
Out-of-order responses are therefore dropped instead of overwriting a
newer state. Errors are always reported, stale or not.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Optional, Union

from .exceptions import RequestError, Unauthenticated
from .models import ActionResult, Cart, CartTotals
from .ports import CartAPI, Notifier
from .session import AuthSession

logger = logging.getLogger(__name__)

CartCall = Callable[[], Awaitable[Union[Cart, tuple[Cart, str]]]]


def compute_totals(
    cart: Optional[Cart],
    free_shipping_threshold: Union[int, Decimal] = 499,
    shipping_fee: Union[int, Decimal] = 40,
) -> CartTotals:
    """
    Derive display totals from a cart.

    ``discount`` is the backend's figure and is never recomputed from the
    coupon. Shipping follows the backend rule: free at or above the
    threshold, a flat fee below it.
    """
    if cart is None:
        return CartTotals()

    threshold = Decimal(free_shipping_threshold)
    items_count = sum(item.quantity for item in cart.items)
    subtotal = sum((item.unit_price * item.quantity for item in cart.items), Decimal("0"))
    shipping = Decimal("0") if subtotal >= threshold else Decimal(shipping_fee)

    return CartTotals(
        items_count=items_count,
        subtotal=subtotal,
        discount=cart.discount,
        shipping=shipping,
        total=subtotal - cart.discount + shipping,
        free_shipping_remaining=threshold - subtotal if shipping else Decimal("0"),
    )


class CartSyncController:
    """
    Mediates every cart operation through the backend.

    States: unauthenticated (cart is None) and authenticated (cart holds
    the last applied backend cart, None until the first fetch lands).
    Becoming authenticated triggers one fetch; losing authentication
    drops the cart without a request.
    """

    def __init__(
        self,
        api: CartAPI,
        session: AuthSession,
        notifier: Notifier,
        free_shipping_threshold: int = 499,
        shipping_fee: int = 40,
    ) -> None:
        self._api = api
        self._session = session
        self._notifier = notifier
        self._free_shipping_threshold = free_shipping_threshold
        self._shipping_fee = shipping_fee
        self._issued_seq = 0
        self._applied_seq = 0
        self._fetches_in_flight = 0
        self._sync_task: Optional[asyncio.Task[ActionResult]] = None

        self.cart: Optional[Cart] = None
        self._unsubscribe = session.subscribe(self._on_auth_change)

    @property
    def loading(self) -> bool:
        """True while any fetch is in flight."""
        return self._fetches_in_flight > 0

    @property
    def items_count(self) -> int:
        return self.totals.items_count

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def totals(self) -> CartTotals:
        return compute_totals(self.cart, self._free_shipping_threshold, self._shipping_fee)

    async def fetch(self) -> ActionResult:
        """Reload the cart; a no-op without a session."""
        if not self._session.is_authenticated:
            return ActionResult.failed(Unauthenticated(), "Please login to view your cart")

        self._fetches_in_flight += 1
        try:
            return await self._sync(self._api.get_cart, "Failed to load cart")
        finally:
            self._fetches_in_flight -= 1

    async def add_item(self, product_id: str, quantity: int = 1) -> ActionResult:
        return await self._mutate(
            lambda: self._api.add_item(product_id, quantity),
            "Failed to add to cart",
            success_message="Added to cart!",
            unauthenticated_message="Please login to add items to cart",
        )

    async def set_quantity(self, product_id: str, quantity: int) -> ActionResult:
        """Set a line quantity. Callers keep ``quantity`` >= 1."""
        return await self._mutate(
            lambda: self._api.update_item(product_id, quantity),
            "Failed to update cart",
        )

    async def remove_item(self, product_id: str) -> ActionResult:
        return await self._mutate(
            lambda: self._api.remove_item(product_id),
            "Failed to remove item",
            success_message="Item removed from cart",
        )

    async def clear(self) -> ActionResult:
        return await self._mutate(self._api.clear_cart, "Failed to clear cart")

    async def apply_coupon(self, code: str) -> ActionResult:
        """Apply a coupon; the backend's reason is shown verbatim on failure."""
        return await self._mutate(
            lambda: self._api.apply_coupon(code),
            "Invalid coupon code",
            success_message="Coupon applied!",
        )

    async def remove_coupon(self) -> ActionResult:
        return await self._mutate(
            self._api.remove_coupon,
            "Failed to remove coupon",
            success_message="Coupon removed",
        )

    def mark_order_placed(self) -> None:
        """The backend empties the cart when an order is placed."""
        if not self._session.is_authenticated:
            return
        self._applied_seq = self._next_seq()
        self.cart = Cart.empty()
        logger.info("Cart cleared after order placement")

    async def wait_for_sync(self) -> None:
        """Wait for the fetch started by the last login, if any."""
        if self._sync_task is not None:
            await self._sync_task

    def close(self) -> None:
        self._unsubscribe()
        if self._sync_task is not None and not self._sync_task.done():
            self._sync_task.cancel()

    def _on_auth_change(self, authenticated: bool) -> None:
        if authenticated:
            self._sync_task = asyncio.get_running_loop().create_task(self.fetch())
            return

        # Anything still in flight belongs to the old session.
        self._applied_seq = self._issued_seq
        self.cart = None
        logger.info("Cart dropped after logout")

    async def _mutate(
        self,
        call: CartCall,
        fallback: str,
        success_message: Optional[str] = None,
        unauthenticated_message: str = "Please login to manage your cart",
    ) -> ActionResult:
        if not self._session.is_authenticated:
            self._notifier.error(unauthenticated_message)
            return ActionResult.failed(Unauthenticated(unauthenticated_message), unauthenticated_message)

        result = await self._sync(call, fallback)
        if result.success:
            message = result.message or success_message
            if message:
                self._notifier.success(message)
        return result

    async def _sync(self, call: CartCall, fallback: str) -> ActionResult:
        seq = self._next_seq()
        epoch = self._session.epoch
        try:
            response = await call()
        except RequestError as e:
            message = e.message or fallback
            logger.warning("Cart request #%d failed: %s", seq, message)
            self._notifier.error(message)
            return ActionResult.failed(e, message)

        if isinstance(response, tuple):
            cart, message = response
        else:
            cart, message = response, ""
        self._apply(cart, seq, epoch)
        return ActionResult.ok(message, value=self.cart)

    def _apply(self, cart: Cart, seq: int, epoch: int) -> bool:
        if epoch != self._session.epoch or not self._session.is_authenticated:
            logger.debug("Dropping cart response #%d from a previous session", seq)
            return False
        if seq <= self._applied_seq:
            logger.debug("Dropping stale cart response #%d (applied #%d)", seq, self._applied_seq)
            return False
        self._applied_seq = seq
        self.cart = cart
        return True

    def _next_seq(self) -> int:
        self._issued_seq += 1
        return self._issued_seq
