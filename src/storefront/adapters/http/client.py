"""Storefront REST API client."""

import logging
from collections.abc import Callable
from typing import Any, Optional, TypeVar

import httpx
import pydantic

from storefront.domain.exceptions import RequestError, classify_request_error
from storefront.domain.models import AuthPayload, Cart, OrderConfirmation, ShippingAddress, UserSnapshot

from .schemas import (
    AuthResponse,
    CartResponse,
    MeResponse,
    OrderResponse,
    RegisterInitResponse,
    VerifyEmailResponse,
)

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=pydantic.BaseModel)


class HttpBackendAPI:
    """
    Client for the storefront backend.

    Implements the RegistrationAPI, AuthAPI, CartAPI and OrdersAPI ports.
    A bearer token is attached to every request while a session exists,
    and any 401 answer is reported through ``on_unauthorized``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize the backend client.

        Args:
            base_url: API root, e.g. http://localhost:5000/api
            timeout: Seconds per request
            transport: Optional httpx transport (tests, ASGI apps)
            token_provider: Returns the current bearer token, if any
            on_unauthorized: Called whenever the backend answers 401
        """
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # Registration

    async def register_init(self, name: str, email: str, phone: str, password: str) -> str:
        body = await self._request(
            "POST",
            "/auth/register/init",
            json={"name": name, "email": email, "phone": phone, "password": password},
            fallback="Registration failed",
        )
        return self._parse(RegisterInitResponse, body).registration_id

    async def verify_email_otp(self, registration_id: str, otp: str) -> str:
        body = await self._request(
            "POST",
            "/auth/register/verify-email",
            json={"registrationId": registration_id, "otp": otp},
            fallback="Invalid OTP",
        )
        return self._parse(VerifyEmailResponse, body).phone

    async def verify_phone_otp(self, registration_id: str, otp: str) -> AuthPayload:
        body = await self._request(
            "POST",
            "/auth/register/verify-phone",
            json={"registrationId": registration_id, "otp": otp},
            fallback="Invalid OTP",
        )
        return self._parse(AuthResponse, body).to_domain()

    async def resend_email_otp(self, registration_id: str) -> None:
        await self._request(
            "POST",
            "/auth/register/resend-email-otp",
            json={"registrationId": registration_id},
            fallback="Failed to resend OTP",
        )

    async def resend_phone_otp(self, registration_id: str) -> None:
        await self._request(
            "POST",
            "/auth/register/resend-phone-otp",
            json={"registrationId": registration_id},
            fallback="Failed to resend OTP",
        )

    # Session

    async def login(self, email: str, password: str) -> AuthPayload:
        body = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}, fallback="Login failed"
        )
        return self._parse(AuthResponse, body).to_domain()

    async def get_me(self) -> UserSnapshot:
        body = await self._request("GET", "/auth/me")
        return self._parse(MeResponse, body).user.to_domain()

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    # Cart

    async def get_cart(self) -> Cart:
        return await self._cart("GET", "/cart", fallback="Failed to load cart")

    async def add_item(self, product_id: str, quantity: int) -> Cart:
        return await self._cart(
            "POST",
            "/cart/add",
            json={"productId": product_id, "quantity": quantity},
            fallback="Failed to add to cart",
        )

    async def update_item(self, product_id: str, quantity: int) -> Cart:
        return await self._cart(
            "PUT",
            "/cart/update",
            json={"productId": product_id, "quantity": quantity},
            fallback="Failed to update cart",
        )

    async def remove_item(self, product_id: str) -> Cart:
        return await self._cart("DELETE", f"/cart/remove/{product_id}", fallback="Failed to remove item")

    async def clear_cart(self) -> Cart:
        return await self._cart("DELETE", "/cart/clear", fallback="Failed to clear cart")

    async def apply_coupon(self, code: str) -> tuple[Cart, str]:
        body = await self._request(
            "POST", "/cart/apply-coupon", json={"code": code}, fallback="Invalid coupon code"
        )
        response = self._parse(CartResponse, body)
        return response.cart.to_domain(), response.message

    async def remove_coupon(self) -> Cart:
        return await self._cart("DELETE", "/cart/remove-coupon", fallback="Failed to remove coupon")

    # Orders

    async def create_order(
        self,
        shipping_address: ShippingAddress,
        payment_method: str,
        notes: str,
        coupon_code: Optional[str],
    ) -> OrderConfirmation:
        payload: dict[str, Any] = {
            "shippingAddress": {
                "fullName": shipping_address.full_name,
                "addressLine1": shipping_address.address_line1,
                "addressLine2": shipping_address.address_line2,
                "city": shipping_address.city,
                "state": shipping_address.state,
                "zipCode": shipping_address.zip_code,
                "phone": shipping_address.phone,
            },
            "paymentMethod": payment_method,
            "notes": notes,
        }
        if coupon_code:
            payload["couponCode"] = coupon_code

        body = await self._request("POST", "/orders", json=payload, fallback="Failed to place order")
        return self._parse(OrderResponse, body).order.to_domain()

    async def _cart(self, method: str, path: str, json: Optional[dict] = None, fallback: str = "") -> Cart:
        body = await self._request(method, path, json=json, fallback=fallback)
        return self._parse(CartResponse, body).cart.to_domain()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        fallback: str = "Request failed",
    ) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            RequestError: Transport failure, non-2xx answer or non-JSON body
            SessionExpired: Non-2xx answer flagged as an expired registration
        """
        headers = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RequestError(f"Network error: {e}") from e

        logger.debug("%s %s -> %d", method, path, response.status_code)

        if response.status_code == 401 and self.on_unauthorized is not None:
            self.on_unauthorized()

        body = self._decode(response)

        if response.is_error:
            message = (body or {}).get("message") or fallback
            raise classify_request_error(message, response.status_code, (body or {}).get("code"))

        if response.status_code == 204:
            return {}
        if body is None:
            raise RequestError("Invalid response from server", status_code=response.status_code)
        return body

    @staticmethod
    def _decode(response: httpx.Response) -> Optional[dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _parse(model: type[ResponseModel], body: dict[str, Any]) -> ResponseModel:
        try:
            return model.model_validate(body)
        except pydantic.ValidationError as e:
            logger.warning("Unexpected %s payload: %s", model.__name__, e)
            raise RequestError("Invalid response from server") from e
