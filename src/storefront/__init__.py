"""
storefront - client-side core of the commerce storefront.

Hosts the two client-local state machines (multi-step registration and
cart synchronisation) together with the session, configuration and
backend adapters they are wired to.
"""

__version__ = "0.1.0"
