"""
Registration flow - Client-side multi-step signup state machine.

Registration State Machine
==========================

States:
- FORM: Collecting name, email, phone and password
- EMAIL_OTP: Pending registration created, waiting for the email code
- PHONE_OTP: Email verified, waiting for the phone code
- SUCCESS: Account created and session established (terminal)

Transitions:
    FORM      -> EMAIL_OTP  (register_init accepted)
    EMAIL_OTP -> PHONE_OTP  (email code accepted)
    PHONE_OTP -> SUCCESS    (phone code accepted)
    EMAIL_OTP -> FORM       (session expired, or user changes details)
    PHONE_OTP -> FORM       (session expired, or user changes details)

Expiry resets the whole draft. Any other failure keeps the current state
and the entered code so the user can correct it.

Each reset bumps a generation counter. A response is applied only if the
generation and registrationId it was issued under are still current, so a
late answer can never resurrect a discarded registration.
"""

import logging
import re
from typing import Optional

from .countdown import ResendCountdown
from .exceptions import RequestError, SessionExpired, StorefrontError, ValidationError
from .models import ActionResult, RegistrationDraft
from .otp import OtpBuffer
from .ports import Notifier, OtpChannel, RegistrationAPI, RegistrationStep
from .session import AuthSession
from .validation import validate_registration

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")

SESSION_EXPIRED_MESSAGE = "Session expired. Please fill the form again."


class RegistrationFlow:
    """
    Drives one signup from form entry to an authenticated session.

    This is the only component that writes auth state, and only on the
    PHONE_OTP -> SUCCESS transition.
    """

    def __init__(
        self,
        api: RegistrationAPI,
        session: AuthSession,
        notifier: Notifier,
        otp_length: int = 6,
        resend_cooldown: int = 60,
        countdown: Optional[ResendCountdown] = None,
    ) -> None:
        self._api = api
        self._session = session
        self._notifier = notifier
        self._otp_length = otp_length
        self._resend_cooldown = resend_cooldown
        self._countdown = countdown or ResendCountdown()
        self._generation = 0

        self.step = RegistrationStep.FORM
        self.draft = RegistrationDraft()
        self.registration_id: Optional[str] = None
        self.masked_phone = ""
        self.email_otp = OtpBuffer(otp_length)
        self.phone_otp = OtpBuffer(otp_length)
        self.loading = False

    @property
    def resend_timer(self) -> int:
        """Seconds left before a resend is allowed."""
        return self._countdown.remaining

    def otp_buffer(self, channel: OtpChannel) -> OtpBuffer:
        return self.email_otp if channel is OtpChannel.EMAIL else self.phone_otp

    async def submit_form(self, draft: Optional[RegistrationDraft] = None) -> ActionResult:
        """
        Step 1: validate the form and create a pending registration.

        Args:
            draft: Form values; the current draft is used when omitted

        Returns:
            ActionResult with per-field errors on validation failure
        """
        if draft is not None:
            self.draft = draft
        if self.step is not RegistrationStep.FORM:
            return self._wrong_step("submit the form")

        field_errors = validate_registration(self.draft)
        if field_errors:
            return ActionResult.failed(ValidationError(field_errors), "Please correct the highlighted fields")

        generation = self._generation
        self.loading = True
        try:
            registration_id = await self._api.register_init(
                name=self.draft.name.strip(),
                email=self.draft.email,
                phone=self.draft.phone,
                password=self.draft.password,
            )
        except RequestError as e:
            return self._request_failed(e, "Registration failed", generation)
        finally:
            self.loading = False

        if generation != self._generation:
            return self._stale("register_init")

        self.registration_id = registration_id
        self._countdown.restart(self._resend_cooldown)
        self._move_to(RegistrationStep.EMAIL_OTP)
        self._notifier.success("OTP sent to your email!")
        return ActionResult.ok("OTP sent to your email!")

    async def submit_email_otp(self, otp: Optional[str] = None) -> ActionResult:
        """
        Step 2: verify the email code.

        Args:
            otp: Code to submit; defaults to the email OTP buffer contents
        """
        code = self.email_otp.value if otp is None else otp
        if self.step is not RegistrationStep.EMAIL_OTP:
            return self._wrong_step("verify the email code")
        incomplete = self._incomplete_code(code)
        if incomplete:
            return incomplete

        generation, registration_id = self._generation, self.registration_id
        self.loading = True
        try:
            masked_phone = await self._api.verify_email_otp(registration_id, code)
        except RequestError as e:
            return self._request_failed(e, "Invalid OTP", generation)
        finally:
            self.loading = False

        if self._is_stale(generation, registration_id):
            return self._stale("verify_email_otp")

        self.masked_phone = masked_phone
        self._countdown.restart(self._resend_cooldown)
        self._move_to(RegistrationStep.PHONE_OTP)
        self._notifier.success("Email verified! OTP sent to your phone.")
        return ActionResult.ok("Email verified! OTP sent to your phone.")

    async def submit_phone_otp(self, otp: Optional[str] = None) -> ActionResult:
        """
        Step 3: verify the phone code and establish the session.

        Args:
            otp: Code to submit; defaults to the phone OTP buffer contents
        """
        code = self.phone_otp.value if otp is None else otp
        if self.step is not RegistrationStep.PHONE_OTP:
            return self._wrong_step("verify the phone code")
        incomplete = self._incomplete_code(code)
        if incomplete:
            return incomplete

        generation, registration_id = self._generation, self.registration_id
        self.loading = True
        try:
            payload = await self._api.verify_phone_otp(registration_id, code)
        except RequestError as e:
            return self._request_failed(e, "Invalid OTP", generation)
        finally:
            self.loading = False

        if self._is_stale(generation, registration_id):
            return self._stale("verify_phone_otp")

        self._session.establish(payload.token, payload.user)
        self.draft = RegistrationDraft()
        self._clear_progress()
        self._move_to(RegistrationStep.SUCCESS)
        self._notifier.success("Registration successful!")
        return ActionResult.ok("Registration successful!", value=payload.user)

    async def resend(self, channel: OtpChannel) -> ActionResult:
        """
        Ask the backend to send a new code on ``channel``.

        Does nothing while the resend countdown is running.
        """
        if self._countdown.active:
            return ActionResult(
                success=False,
                message=f"Please wait {self._countdown.remaining}s before requesting a new code",
            )

        expected = RegistrationStep.EMAIL_OTP if channel is OtpChannel.EMAIL else RegistrationStep.PHONE_OTP
        if self.step is not expected:
            return self._wrong_step(f"resend the {channel.value} code")

        generation, registration_id = self._generation, self.registration_id
        self.loading = True
        try:
            if channel is OtpChannel.EMAIL:
                await self._api.resend_email_otp(registration_id)
            else:
                await self._api.resend_phone_otp(registration_id)
        except RequestError as e:
            return self._request_failed(e, "Failed to resend OTP", generation)
        finally:
            self.loading = False

        if self._is_stale(generation, registration_id):
            return self._stale(f"resend_{channel.value}_otp")

        self.otp_buffer(channel).clear()
        self._countdown.restart(self._resend_cooldown)
        message = f"OTP resent to your {channel.value}"
        self._notifier.success(message)
        return ActionResult.ok(message)

    def change_details(self) -> None:
        """Go back to the form to edit email or phone, keeping typed values."""
        if self.step not in (RegistrationStep.EMAIL_OTP, RegistrationStep.PHONE_OTP):
            return
        self._clear_progress()
        self._move_to(RegistrationStep.FORM)

    def close(self) -> None:
        """Tear down: stop the countdown and ignore in-flight responses."""
        self._generation += 1
        self._countdown.cancel()

    def _incomplete_code(self, code: str) -> Optional[ActionResult]:
        if len(code) == self._otp_length and _DIGITS.fullmatch(code):
            return None
        message = "Please enter complete OTP"
        self._notifier.error(message)
        return ActionResult.failed(ValidationError({"otp": message}), message)

    def _request_failed(self, error: RequestError, fallback: str, generation: int) -> ActionResult:
        message = error.message or fallback
        logger.warning("Registration request failed at %s: %s", self.step.name, message)
        self._notifier.error(message)

        if generation != self._generation:
            logger.debug("Ignoring failure for a discarded registration")
            return ActionResult.failed(error, message)

        if isinstance(error, SessionExpired) and self.step in (
            RegistrationStep.EMAIL_OTP,
            RegistrationStep.PHONE_OTP,
        ):
            self._expire()
            self._notifier.error(SESSION_EXPIRED_MESSAGE)
        return ActionResult.failed(error, message)

    def _expire(self) -> None:
        logger.info("Registration %s expired, restarting flow", self.registration_id)
        self.draft = RegistrationDraft()
        self._clear_progress()
        self._move_to(RegistrationStep.FORM)

    def _clear_progress(self) -> None:
        self._generation += 1
        self.registration_id = None
        self.masked_phone = ""
        self.email_otp.clear()
        self.phone_otp.clear()
        self._countdown.reset()

    def _is_stale(self, generation: int, registration_id: Optional[str]) -> bool:
        return generation != self._generation or registration_id != self.registration_id

    def _stale(self, operation: str) -> ActionResult:
        logger.debug("Dropping stale %s response", operation)
        return ActionResult(success=False, message="Registration was restarted")

    def _wrong_step(self, action: str) -> ActionResult:
        message = f"Cannot {action} at step {self.step.name}"
        return ActionResult.failed(StorefrontError(message), message)

    def _move_to(self, step: RegistrationStep) -> None:
        logger.info("Registration step %s -> %s", self.step.name, step.name)
        self.step = step
