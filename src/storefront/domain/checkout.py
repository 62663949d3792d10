"""
Checkout - Order placement from the current cart.

Pricing, stock checks and coupon redemption happen on the backend; this
service validates the address, submits the order and empties the local
cart once the backend has done the same.
"""

import logging

from .cart import CartSyncController
from .exceptions import RequestError, Unauthenticated, ValidationError
from .models import ActionResult, ShippingAddress
from .ports import Notifier, OrdersAPI
from .session import AuthSession
from .validation import validate_shipping_address

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cod", "card", "upi", "netbanking", "wallet", "online")


class CheckoutService:
    def __init__(
        self,
        api: OrdersAPI,
        session: AuthSession,
        cart: CartSyncController,
        notifier: Notifier,
    ) -> None:
        self._api = api
        self._session = session
        self._cart = cart
        self._notifier = notifier

    async def place_order(
        self,
        shipping_address: ShippingAddress,
        payment_method: str = "cod",
        notes: str = "",
    ) -> ActionResult:
        """
        Submit the current cart as an order.

        Args:
            shipping_address: Delivery address, all required fields filled
            payment_method: One of PAYMENT_METHODS
            notes: Free-form delivery notes

        Returns:
            ActionResult whose value is the OrderConfirmation on success
        """
        if not self._session.is_authenticated:
            message = "Please login to place an order"
            self._notifier.error(message)
            return ActionResult.failed(Unauthenticated(message), message)

        field_errors = validate_shipping_address(shipping_address)
        if payment_method not in PAYMENT_METHODS:
            field_errors["payment_method"] = "Please select a payment method"
        if field_errors:
            return ActionResult.failed(ValidationError(field_errors), "Please provide complete shipping address")

        cart = self._cart.cart
        coupon_code = cart.coupon.code if cart is not None and cart.coupon is not None else None

        try:
            order = await self._api.create_order(shipping_address, payment_method, notes, coupon_code)
        except RequestError as e:
            message = e.message or "Failed to place order"
            logger.warning("Order placement failed: %s", message)
            self._notifier.error(message)
            return ActionResult.failed(e, message)

        logger.info("Order %s placed", order.order_number or order.id)
        self._cart.mark_order_placed()
        self._notifier.success("Order placed successfully!")
        return ActionResult.ok("Order placed successfully!", value=order)
