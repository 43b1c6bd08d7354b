"""Inventory and staff risk detection for the owner dashboard.

Both checks are pure: inventory age is measured against the caller's ``now``
and employee comparisons only look at the orders they are given.
"""
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from kamdon.app.schemas.analytics import EmployeeOutlier, InventoryRisk, InventoryRisks
from kamdon.app.services.documents import (
    elapsed,
    to_decimal,
    to_instant,
    to_int,
    to_opt_str,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
SECONDS_PER_DAY = 86400

# Inventory
STOCK_IGNORE_LIMIT = 2  # at or below this, stock is never flagged
NEW_PRODUCT_DAYS = 7
SLOW_MOVING_RATIO = 0.7
PREMIUM_PRICE = Decimal("2000")

# Staff
MIN_EMPLOYEES = 3
MIN_ORDERS_PER_EMPLOYEE = 30
MIN_QUALIFIED_EMPLOYEES = 2
OUTLIER_Z_SCORE = Decimal("-2")


def inactivity_threshold(category: str | None, base_price: Decimal) -> int:
    """Days without a sale before a product counts as dead stock."""
    category = (category or "").lower()
    if any(tag in category for tag in ("kids", "accessor", "fast")):
        return 14
    if base_price > PREMIUM_PRICE or "premium" in category or "jacket" in category:
        return 60
    if "seasonal" in category:
        return 45
    return 30


def days_inactive(since: datetime, now: datetime) -> int:
    seconds = abs(elapsed(since, now).total_seconds())
    return math.ceil(seconds / SECONDS_PER_DAY)


def detect_inventory_risks(
    products: Sequence[Mapping[str, Any]],
    last_sale: Mapping[str, datetime],
    now: datetime,
) -> InventoryRisks:
    """Split active, well-stocked products into dead and slow-moving stock.

    A product's age is taken from its last sale, or from its ``createdAt``
    when it has never sold. Never-sold products younger than a week are left
    alone, and active products with neither date are listed as having
    insufficient data. Both risk lists are ordered by value at risk
    (stock x base price), highest first.
    """
    dead: list[InventoryRisk] = []
    slow: list[InventoryRisk] = []
    insufficient: list[str] = []

    for product in products:
        stock = to_int(product.get("stockQty"))
        if product.get("id") is None or not product.get("isActive") or stock <= STOCK_IGNORE_LIMIT:
            continue
        product_id = str(product["id"])

        reference = last_sale.get(product_id)
        never_sold = reference is None
        if reference is None:
            reference = to_instant(product.get("createdAt"), now.tzinfo)
            if reference is None:
                insufficient.append(product_id)
                continue

        days = days_inactive(reference, now)
        if never_sold and days < NEW_PRODUCT_DAYS:
            continue

        base_price = to_decimal(product.get("basePrice"))
        threshold = inactivity_threshold(product.get("category"), base_price)
        if days <= threshold * SLOW_MOVING_RATIO:
            continue

        risk = InventoryRisk(
            id=product_id,
            name=product.get("name") or "Unknown",
            sku=to_opt_str(product.get("sku")),
            category=to_opt_str(product.get("category")),
            stock_qty=stock,
            days_inactive=days,
            never_sold=never_sold,
            value_at_risk=stock * base_price,
        )
        (dead if days > threshold else slow).append(risk)

    def by_value(risk: InventoryRisk) -> tuple[Decimal, str]:
        return -risk.value_at_risk, risk.id

    return InventoryRisks(
        dead_stock=tuple(sorted(dead, key=by_value)),
        slow_moving=tuple(sorted(slow, key=by_value)),
        insufficient_data=tuple(sorted(insufficient)),
    )


def find_aov_outliers(
    revenues_by_employee: Mapping[str, Sequence[Decimal]],
    names: Mapping[str, str],
) -> tuple[EmployeeOutlier, ...] | None:
    """Employees whose average order value sits more than two standard
    deviations below their peers'.

    Returns ``None`` when fewer than three employees sold anything or fewer
    than two of them have at least 30 orders.
    """
    if len(revenues_by_employee) < MIN_EMPLOYEES:
        return None
    qualified = {
        employee_id: revenues
        for employee_id, revenues in sorted(revenues_by_employee.items())
        if len(revenues) >= MIN_ORDERS_PER_EMPLOYEE
    }
    if len(qualified) < MIN_QUALIFIED_EMPLOYEES:
        return None

    averages = {
        employee_id: sum(revenues, ZERO) / len(revenues)
        for employee_id, revenues in qualified.items()
    }
    mean = sum(averages.values(), ZERO) / len(averages)
    variance = sum(((avg - mean) ** 2 for avg in averages.values()), ZERO) / len(averages)
    std_dev = variance.sqrt()

    outliers: list[EmployeeOutlier] = []
    for employee_id, avg in averages.items():
        z_score = (avg - mean) / std_dev if std_dev > 0 else ZERO
        if z_score < OUTLIER_Z_SCORE:
            outliers.append(EmployeeOutlier(
                id=employee_id,
                name=names.get(employee_id, "Unknown"),
                orders=len(qualified[employee_id]),
                avg_order_value=avg,
                z_score=z_score,
                deviation_percent=(1 - avg / mean) * HUNDRED if mean > 0 else ZERO,
            ))
    outliers.sort(key=lambda o: (o.z_score, o.id))
    return tuple(outliers)
