"""Shared test fixtures.

Everything under test is pure, so fixtures are plain values and factories;
the HTTP tests use FastAPI's TestClient against the real app.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from kamdon.app.main import app
from kamdon.app.schemas.bill import BillMetadata, CustomerInfo, SellerInfo
from kamdon.app.schemas.billing import Cart, CartItem


# ─── Clock ───────────────────────────────────────────────────────────────────


@pytest.fixture()
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ─── Cart factories ──────────────────────────────────────────────────────────


@pytest.fixture()
def make_item() -> Callable[..., CartItem]:
    """Build a CartItem with sensible defaults; override any field by keyword."""

    def _make(**overrides: Any) -> CartItem:
        fields: dict[str, Any] = {
            "product_id": "prod-1",
            "name": "Cotton Kurta",
            "sku": "KUR-001",
            "category": "men",
            "quantity": 1,
            "base_price": Decimal("999"),
            "gst_rate": 12,
            "is_tax_inclusive": False,
        }
        fields.update(overrides)
        return CartItem(**fields)

    return _make


@pytest.fixture()
def simple_cart(make_item: Callable[..., CartItem]) -> Cart:
    """2 x 999 @ 12% exclusive, no discount."""
    return Cart(items=(make_item(quantity=2),))


@pytest.fixture()
def mixed_cart(make_item: Callable[..., CartItem]) -> Cart:
    return Cart(items=(
        make_item(product_id="saree", name="Silk Saree", sku="SAR-001",
                  category="women", base_price=Decimal("4999"), gst_rate=5),
        make_item(product_id="kurti", name="Printed Kurti", sku="KTI-002",
                  category="women", quantity=2, base_price=Decimal("1499"),
                  sale_price=Decimal("1199"), is_on_sale=True),
        make_item(product_id="dress", name="Party Dress", sku="DRS-003",
                  category="kids", base_price=Decimal("1999"),
                  sale_price=Decimal("1599"), is_on_sale=True),
    ))


# ─── Bill fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def seller() -> SellerInfo:
    return SellerInfo(
        business_name="Kamdon Fashion",
        gstin="27AAAAA0000A1Z5",
        store_address="FC Road, Pune",
        state_code="27",
        phone="+91-9800000000",
        email="store@kamdon.test",
    )


@pytest.fixture()
def metadata() -> BillMetadata:
    return BillMetadata(
        order_id="ord-000123",
        order_type="store",
        employee_id="emp-1",
        employee_name="Asha Patil",
        customer=CustomerInfo(name="Rohan Mehta", phone="9811111111", address="Baner, Pune"),
    )


# ─── Analytics documents ─────────────────────────────────────────────────────


@pytest.fixture()
def products() -> list[dict[str, Any]]:
    return [
        {"id": "p-saree", "name": "Silk Saree", "sku": "SAR-001", "category": "women",
         "stockQty": 12, "lowStockThreshold": 5},
        {"id": "p-shirt", "name": "Linen Shirt", "sku": "SHR-001", "category": "men",
         "stockQty": 0, "lowStockThreshold": 5},
        {"id": "p-frock", "name": "Cotton Frock", "sku": "FRK-001", "category": "kids",
         "stockQty": 3, "lowStockThreshold": 5},
    ]


@pytest.fixture()
def users() -> list[dict[str, Any]]:
    return [
        {"id": "u-owner", "name": "Kavita Owner", "email": "owner@kamdon.test", "role": "owner"},
        {"id": "u-asha", "name": "Asha Patil", "email": "asha@kamdon.test", "role": "employee"},
        {"id": "u-ravi", "email": "ravi@kamdon.test", "role": "employee"},
    ]


# ─── HTTP client ─────────────────────────────────────────────────────────────


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
