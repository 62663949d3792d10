"""
Form validation - Client-side checks run before any request is issued.

Rules mirror the backend's own validators so the user sees field errors
without a round trip. The backend remains authoritative.
"""

import re

from .models import RegistrationDraft, ShippingAddress

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")
MIN_PASSWORD_LENGTH = 8


def validate_registration(draft: RegistrationDraft) -> dict[str, str]:
    """
    Validate the signup form.

    Password rules are checked in order and only the first failure is
    reported for that field.

    Args:
        draft: Form values from step 1

    Returns:
        Mapping of field name to error message; empty when valid
    """
    errors: dict[str, str] = {}

    if not draft.name.strip():
        errors["name"] = "Name is required"

    if not draft.email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.search(draft.email):
        errors["email"] = "Please enter a valid email"

    if not draft.phone:
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.match(draft.phone):
        errors["phone"] = "Please enter a valid 10-digit Indian phone number"

    password_error = _password_error(draft.password)
    if password_error:
        errors["password"] = password_error

    if draft.password != draft.confirm_password:
        errors["confirm_password"] = "Passwords do not match"

    return errors


def _password_error(password: str) -> str:
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return ""


def validate_shipping_address(address: ShippingAddress) -> dict[str, str]:
    """Check the fields the backend requires for order placement."""
    required = {
        "full_name": "Full name is required",
        "address_line1": "Address is required",
        "city": "City is required",
        "state": "State is required",
        "zip_code": "ZIP code is required",
        "phone": "Phone number is required",
    }
    return {
        name: message
        for name, message in required.items()
        if not getattr(address, name).strip()
    }
