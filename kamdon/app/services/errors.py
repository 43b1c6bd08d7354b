"""Typed failures raised by the billing and analytics services.

All of them subclass ``ValueError`` so the HTTP layer can keep translating
service errors into ``400 Bad Request`` the same way for every endpoint.
"""

from __future__ import annotations


class InvalidCart(ValueError):
    """Structural violation in a cart handed to ``calculate_order``."""


class InvalidBillMetadata(ValueError):
    """Missing or unknown metadata handed to ``generate_bill``."""


class InvalidFilter(ValueError):
    """Unrecognised date range, or a custom range that ends before it starts."""
