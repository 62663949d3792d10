"""
Application composition root.

Builds the session, backend client and controllers once at startup and
tears them down at shutdown. Nothing here is module-global: every
component receives its collaborators explicitly.
"""

import logging
from types import TracebackType
from typing import Optional

import httpx

from storefront.adapters.http import HttpBackendAPI
from storefront.adapters.notify import ConsoleNotifier
from storefront.adapters.storage import FileTokenStore
from storefront.config.settings import Settings, get_settings
from storefront.domain.cart import CartSyncController
from storefront.domain.checkout import CheckoutService
from storefront.domain.ports import Notifier, TokenStore
from storefront.domain.registration import RegistrationFlow
from storefront.domain.session import AuthSession

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class StorefrontApp:
    """
    Wires the storefront core together.

    Usage:
        async with StorefrontApp() as app:
            await app.cart.add_item("p1")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        token_store: Optional[TokenStore] = None,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.notifier = notifier or ConsoleNotifier()
        self.backend = HttpBackendAPI(
            base_url=self.settings.api_url,
            timeout=self.settings.request_timeout,
            transport=transport,
        )
        self.session = AuthSession(
            api=self.backend,
            store=token_store or FileTokenStore(self.settings.session_file),
            notifier=self.notifier,
        )
        self.backend.token_provider = lambda: self.session.token
        self.backend.on_unauthorized = self.session.invalidate

        self.cart = CartSyncController(
            api=self.backend,
            session=self.session,
            notifier=self.notifier,
            free_shipping_threshold=self.settings.free_shipping_threshold,
            shipping_fee=self.settings.shipping_fee,
        )
        self.checkout = CheckoutService(
            api=self.backend,
            session=self.session,
            cart=self.cart,
            notifier=self.notifier,
        )
        self._flows: list[RegistrationFlow] = []

    def registration(self) -> RegistrationFlow:
        """Start a fresh registration flow."""
        flow = RegistrationFlow(
            api=self.backend,
            session=self.session,
            notifier=self.notifier,
            otp_length=self.settings.otp_length,
            resend_cooldown=self.settings.resend_cooldown_seconds,
        )
        self._flows.append(flow)
        return flow

    async def start(self) -> None:
        configure_logging(self.settings.log_level)
        logger.info("Starting storefront client against %s", self.settings.api_url)
        restored = await self.session.restore()
        if restored:
            await self.cart.wait_for_sync()
        logger.info("Startup complete (authenticated=%s)", self.session.is_authenticated)

    async def aclose(self) -> None:
        logger.info("Shutting down storefront client...")
        for flow in self._flows:
            flow.close()
        self._flows.clear()
        self.cart.close()
        await self.backend.aclose()
        logger.info("Backend client closed")

    async def __aenter__(self) -> "StorefrontApp":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
