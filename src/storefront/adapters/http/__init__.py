"""HTTP adapter - httpx client for the storefront REST API."""

from .client import HttpBackendAPI

__all__ = ["HttpBackendAPI"]
