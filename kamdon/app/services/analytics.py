"""Service layer for the owner analytics dashboard.

``compute_analytics`` reduces raw order / product / user documents into the
dashboard bundle. It is pure: the caller supplies ``now`` and nothing is read
from the clock, the database or module state.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Any

from kamdon.app.core.i18n import translate
from kamdon.app.schemas.analytics import (
    AnalyticsBundle,
    AnalyticsFilter,
    AnalyticsWindow,
    CategoryPerformance,
    DateRange,
    EmployeeOption,
    EmployeeOutlier,
    EmployeePerformance,
    FilterOptions,
    GrowthMetrics,
    Insight,
    InsightType,
    InventoryRisks,
    LowStockProduct,
    PeriodMetrics,
    RawData,
    TopProduct,
    TrendPoint,
)
from kamdon.app.services.documents import (
    EPOCH,
    elapsed,
    shift,
    to_decimal,
    to_instant,
    to_int,
    to_opt_str,
)
from kamdon.app.services.errors import InvalidFilter
from kamdon.app.services.forecast import predict_revenue
from kamdon.app.services.risks import detect_inventory_risks, find_aov_outliers

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
ONE_MS = timedelta(milliseconds=1)
END_OF_DAY = time(23, 59, 59)

LOW_STOCK_LIMIT = 10
COMPLETED = "completed"
ALL = "all"
UNKNOWN = "Unknown"

# Insight thresholds (percent)
STRONG_GROWTH_PCT = Decimal("20")
DECLINE_PCT = Decimal("-10")
AOV_GROWTH_PCT = Decimal("15")
CONCENTRATION_PCT = Decimal("40")
CATEGORY_WINNER_PCT = Decimal("30")
WEEKLY_CHANGE_PCT = Decimal("15")
WEEK_DAYS = 7


# ── Normalized order shape ───────────────────────────────────────────────────


@dataclass(frozen=True)
class _Line:
    product_id: str | None
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class _Order:
    key: int
    created_at: datetime | None
    order_type: str | None
    created_by: str | None
    revenue: Decimal
    items_sold: int
    lines: tuple[_Line, ...]


def _order_revenue(doc: Mapping[str, Any]) -> Decimal:
    totals = doc.get("totals")
    if isinstance(totals, Mapping) and totals.get("payableAmount") is not None:
        return to_decimal(totals["payableAmount"])
    if doc.get("price") is not None and doc.get("quantity") is not None:
        return to_decimal(doc["price"]) * to_int(doc["quantity"])
    return ZERO


def _normalize_order(key: int, doc: Mapping[str, Any], tz: tzinfo) -> _Order:
    """Fold the item-list and legacy single-item shapes into one."""
    revenue = _order_revenue(doc)
    items = doc.get("items")
    if isinstance(items, list):
        lines = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            quantity = to_int(item.get("quantity"))
            if item.get("lineTotal") is not None:
                line_revenue = to_decimal(item["lineTotal"])
            else:
                line_revenue = to_decimal(item.get("unitPrice")) * quantity
            lines.append(_Line(to_opt_str(item.get("productId")), quantity, line_revenue))
        items_sold = sum(line.quantity for line in lines)
    else:
        items_sold = to_int(doc.get("quantity"))
        lines = []
        if doc.get("productId"):
            lines.append(_Line(str(doc["productId"]), items_sold, revenue))

    return _Order(
        key=key,
        created_at=to_instant(doc.get("createdAt"), tz),
        order_type=to_opt_str(doc.get("orderType", doc.get("type"))),
        created_by=to_opt_str(doc.get("createdBy")),
        revenue=revenue,
        items_sold=items_sold,
        lines=tuple(lines),
    )


def _index_by_id(docs: Sequence[Mapping[str, Any]]) -> dict[str, Mapping[str, Any]]:
    index: dict[str, Mapping[str, Any]] = {}
    for doc in docs:
        if doc.get("id") is not None:
            index.setdefault(str(doc["id"]), doc)
    return index


# ── Windows ──────────────────────────────────────────────────────────────────


def derive_window(filters: AnalyticsFilter, now: datetime) -> AnalyticsWindow:
    """Current reporting window for *filters*, ending at *now*.

    Raises ``InvalidFilter`` for an unknown date range or a custom range whose
    end precedes its start.
    """
    tz = now.tzinfo or timezone.utc
    now = now if now.tzinfo else now.replace(tzinfo=tz)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    date_range = filters.date_range

    if date_range == DateRange.TODAY.value:
        start = midnight
    elif date_range == DateRange.WEEK.value:
        start = shift(now, -timedelta(days=7))
    elif date_range == DateRange.MONTH.value:
        start = midnight.replace(day=1)
    elif date_range == DateRange.QUARTER.value:
        start = midnight.replace(month=(now.month - 1) // 3 * 3 + 1, day=1)
    elif date_range == DateRange.YEAR.value:
        start = midnight.replace(month=1, day=1)
    elif date_range == DateRange.ALL.value:
        start = EPOCH.astimezone(tz)
    elif date_range == DateRange.CUSTOM.value:
        start = (
            datetime.combine(filters.start_date, time.min, tzinfo=tz)
            if filters.start_date
            else EPOCH.astimezone(tz)
        )
        end = datetime.combine(filters.end_date or now.date(), END_OF_DAY, tzinfo=tz)
        if end < start:
            raise InvalidFilter("Custom date range ends before it starts")
        return AnalyticsWindow(start=start, end=end)
    else:
        raise InvalidFilter(f"Unknown date range '{date_range}'")

    return AnalyticsWindow(start=start, end=now)


def previous_window(window: AnalyticsWindow) -> AnalyticsWindow:
    """Window of equal duration ending 1ms before *window* starts.

    Durations are measured in real (UTC) time so a daylight-saving change
    inside either window does not stretch or shrink the comparison period.
    """
    duration = elapsed(window.start, window.end)
    return AnalyticsWindow(
        start=shift(window.start, -duration),
        end=shift(window.start, -ONE_MS),
    )


def _in_window(order: _Order, window: AnalyticsWindow) -> bool:
    if order.created_at is None:
        return False
    instant = order.created_at.astimezone(timezone.utc)
    return window.start.astimezone(timezone.utc) <= instant <= window.end.astimezone(timezone.utc)


def _matches_dimensions(
    order: _Order,
    filters: AnalyticsFilter,
    products: Mapping[str, Mapping[str, Any]],
) -> bool:
    if filters.order_type != ALL and order.order_type != filters.order_type:
        return False
    if filters.employee != ALL and order.created_by != filters.employee:
        return False
    if filters.category != ALL:
        return any(
            products.get(line.product_id or "", {}).get("category") == filters.category
            for line in order.lines
        )
    return True


# ── Reductions ───────────────────────────────────────────────────────────────


def growth(current: Decimal | int, previous: Decimal | int) -> Decimal:
    """Percentage change; 0 when there is no previous value to compare with."""
    previous = Decimal(previous)
    if previous <= 0:
        return ZERO
    return (Decimal(current) - previous) / previous * HUNDRED


def _period_metrics(orders: Sequence[_Order]) -> PeriodMetrics:
    total_revenue = sum((o.revenue for o in orders), ZERO)
    total_orders = len(orders)
    return PeriodMetrics(
        total_revenue=total_revenue,
        total_orders=total_orders,
        total_items_sold=sum(o.items_sold for o in orders),
        avg_order_value=total_revenue / total_orders if total_orders else ZERO,
    )


def _revenue_trend(
    orders: Sequence[_Order], window: AnalyticsWindow, open_start: bool,
) -> tuple[TrendPoint, ...]:
    """Daily revenue/order counts over the window, zero-filled between days."""
    if not orders:
        return ()
    tz = window.end.tzinfo
    by_day: dict[date, list] = {}
    for order in orders:
        day = order.created_at.astimezone(tz).date()
        bucket = by_day.setdefault(day, [ZERO, 0])
        bucket[0] += order.revenue
        bucket[1] += 1

    # Windows without a real start begin at the epoch; use the first sale instead.
    first_day = min(by_day) if open_start else window.start.date()
    trend: list[TrendPoint] = []
    day = first_day
    while day <= window.end.date():
        revenue, count = by_day.get(day, (ZERO, 0))
        trend.append(TrendPoint(date=day, revenue=revenue, orders=count))
        day += timedelta(days=1)
    return tuple(trend)


def _top_products(
    orders: Sequence[_Order], products: Mapping[str, Mapping[str, Any]],
) -> tuple[TopProduct, ...]:
    totals: dict[str, list] = {}
    for order in orders:
        for line in order.lines:
            if not line.product_id:
                continue
            entry = totals.setdefault(line.product_id, [ZERO, 0])
            entry[0] += line.revenue
            entry[1] += line.quantity

    result: list[TopProduct] = []
    for product_id, (revenue, quantity) in totals.items():
        product = products.get(product_id)
        if product is None:
            logger.debug("Top products: unknown product id %s", product_id)
            product = {}
        result.append(TopProduct(
            id=product_id,
            name=product.get("name") or UNKNOWN,
            sku=to_opt_str(product.get("sku")),
            category=to_opt_str(product.get("category")),
            revenue=revenue,
            quantity=quantity,
        ))
    result.sort(key=lambda p: (-p.revenue, p.id))
    return tuple(result)


def _revenue_by_category(
    orders: Sequence[_Order], products: Mapping[str, Mapping[str, Any]],
) -> tuple[dict[str, Decimal], dict[str, set[int]]]:
    revenue: dict[str, Decimal] = {}
    order_keys: dict[str, set[int]] = {}
    for order in orders:
        for line in order.lines:
            category = products.get(line.product_id or "", {}).get("category")
            if not category:
                continue
            revenue[category] = revenue.get(category, ZERO) + line.revenue
            order_keys.setdefault(category, set()).add(order.key)
    return revenue, order_keys


def _category_performance(
    current: Sequence[_Order],
    previous: Sequence[_Order],
    products: Mapping[str, Mapping[str, Any]],
) -> tuple[CategoryPerformance, ...]:
    revenue, order_keys = _revenue_by_category(current, products)
    prev_revenue, _ = _revenue_by_category(previous, products)

    result = [
        CategoryPerformance(
            category=category,
            revenue=amount,
            orders=len(order_keys[category]),
            avg_value=amount / len(order_keys[category]),
            growth=growth(amount, prev_revenue.get(category, ZERO)),
        )
        for category, amount in revenue.items()
    ]
    result.sort(key=lambda c: (-c.revenue, c.category))
    return tuple(result)


def _display_name(user: Mapping[str, Any]) -> str:
    return user.get("name") or user.get("email") or UNKNOWN


def _employee_performance(
    orders: Sequence[_Order], users: Mapping[str, Mapping[str, Any]],
) -> tuple[EmployeePerformance, ...]:
    totals: dict[str, list] = {}
    for order in orders:
        entry = totals.setdefault(order.created_by or "", [ZERO, 0])
        entry[0] += order.revenue
        entry[1] += 1

    result = []
    for user_id, (revenue, count) in totals.items():
        user = users.get(user_id, {})
        result.append(EmployeePerformance(
            id=user_id,
            name=_display_name(user),
            revenue=revenue,
            orders=count,
            avg_order=revenue / count,
        ))
    result.sort(key=lambda e: (-e.revenue, e.id))
    return tuple(result)


def _last_sale_by_product(orders: Sequence[_Order]) -> dict[str, datetime]:
    last_sale: dict[str, datetime] = {}
    for order in orders:
        if order.created_at is None:
            continue
        instant = order.created_at.astimezone(timezone.utc)
        for line in order.lines:
            if line.product_id and instant > last_sale.get(line.product_id, EPOCH):
                last_sale[line.product_id] = instant
    return last_sale


def _revenues_by_employee(orders: Sequence[_Order]) -> dict[str, list[Decimal]]:
    revenues: dict[str, list[Decimal]] = {}
    for order in orders:
        if order.created_by:
            revenues.setdefault(order.created_by, []).append(order.revenue)
    return revenues


def _low_stock(
    products: Sequence[Mapping[str, Any]], limit: int,
) -> tuple[LowStockProduct, ...]:
    low: list[LowStockProduct] = []
    for product in products:
        stock, threshold = product.get("stockQty"), product.get("lowStockThreshold")
        if stock is None or threshold is None or product.get("id") is None:
            continue
        if to_int(stock) <= to_int(threshold):
            low.append(LowStockProduct(
                id=str(product["id"]),
                name=product.get("name") or UNKNOWN,
                sku=to_opt_str(product.get("sku")),
                category=to_opt_str(product.get("category")),
                stock_qty=to_int(stock),
                low_stock_threshold=to_int(threshold),
            ))
    low.sort(key=lambda p: (p.stock_qty, p.id))
    return tuple(low[:limit])


# ── Insights ─────────────────────────────────────────────────────────────────


def _insight(
    lang: str, code: str, kind: InsightType, with_action: bool = False, **params: str,
) -> Insight:
    prefix = f"insight.{code}"
    return Insight(
        code=code,
        type=kind,
        title=translate(lang, f"{prefix}.title"),
        message=translate(lang, f"{prefix}.message", **params),
        action=translate(lang, f"{prefix}.action") if with_action else None,
    )


def generate_insights(
    growth_metrics: GrowthMetrics,
    top_products: Sequence[TopProduct],
    categories: Sequence[CategoryPerformance],
    low_stock: Sequence[LowStockProduct],
    lang: str = "en",
) -> tuple[Insight, ...]:
    """Rule-based observations, each rule checked independently in order."""
    insights: list[Insight] = []

    if growth_metrics.revenue > STRONG_GROWTH_PCT:
        insights.append(_insight(
            lang, "strong_revenue_growth", InsightType.SUCCESS,
            growth=f"{growth_metrics.revenue:.1f}",
        ))
    if growth_metrics.revenue < DECLINE_PCT:
        insights.append(_insight(
            lang, "revenue_decline", InsightType.WARNING, with_action=True,
            growth=f"{abs(growth_metrics.revenue):.1f}",
        ))
    if growth_metrics.aov > AOV_GROWTH_PCT:
        insights.append(_insight(
            lang, "increased_order_value", InsightType.SUCCESS,
            growth=f"{growth_metrics.aov:.1f}",
        ))

    top_total = sum((p.revenue for p in top_products), ZERO)
    if top_products and top_total > 0:
        share = top_products[0].revenue / top_total * HUNDRED
        if share > CONCENTRATION_PCT:
            insights.append(_insight(
                lang, "product_concentration", InsightType.INFO,
                name=top_products[0].name, share=f"{share:.0f}",
            ))

    out_of_stock = sum(1 for p in low_stock if p.stock_qty == 0)
    if out_of_stock:
        insights.append(_insight(
            lang, "stock_alert", InsightType.ALERT, with_action=True,
            out_of_stock=str(out_of_stock), low_stock=str(len(low_stock)),
        ))

    if categories and categories[0].growth > CATEGORY_WINNER_PCT:
        best = categories[0]
        insights.append(_insight(
            lang, "category_winner", InsightType.SUCCESS,
            category=best.category.capitalize(), growth=f"{best.growth:.0f}",
        ))

    return tuple(insights)


def weekly_change(trend: Sequence[TrendPoint]) -> Decimal | None:
    """Percent change of the last seven trend days over the seven before them.

    ``None`` with under two weeks of trend or no revenue in the earlier week.
    """
    if len(trend) < 2 * WEEK_DAYS:
        return None
    ordered = sorted(trend, key=lambda p: p.date)
    last_week = sum((p.revenue for p in ordered[-WEEK_DAYS:]), ZERO)
    week_before = sum((p.revenue for p in ordered[-2 * WEEK_DAYS:-WEEK_DAYS]), ZERO)
    if week_before <= 0:
        return None
    return (last_week - week_before) / week_before * HUNDRED


def generate_risk_insights(
    trend: Sequence[TrendPoint],
    inventory_risks: InventoryRisks,
    employee_outliers: Sequence[EmployeeOutlier] | None,
    lang: str = "en",
) -> tuple[Insight, ...]:
    """Risk and short-term change alerts, highest business impact first:
    dead stock value, then the week-over-week swing, then staff variance.
    """
    insights: list[Insight] = []

    dead = inventory_risks.dead_stock
    if dead:
        total = sum((r.value_at_risk for r in dead), ZERO)
        insights.append(_insight(
            lang, "inventory_value_risk", InsightType.ALERT, with_action=True,
            value=f"{total / 1000:.1f}", count=str(len(dead)),
            name=dead[0].name, days=str(dead[0].days_inactive),
        ))

    change = weekly_change(trend)
    if change is not None and change < -WEEKLY_CHANGE_PCT:
        insights.append(_insight(
            lang, "revenue_alert", InsightType.WARNING, change=f"{abs(change):.1f}",
        ))
    elif change is not None and change > WEEKLY_CHANGE_PCT:
        insights.append(_insight(
            lang, "growth_spike", InsightType.SUCCESS, change=f"{change:.1f}",
        ))

    if employee_outliers:
        insights.append(_insight(
            lang, "staff_variance", InsightType.INFO, count=str(len(employee_outliers)),
        ))

    return tuple(insights)


# ── Entry points ─────────────────────────────────────────────────────────────


def compute_analytics(
    raw: RawData,
    filters: AnalyticsFilter,
    now: datetime,
    lang: str = "en",
    low_stock_limit: int = LOW_STOCK_LIMIT,
    forecast_days: int = 14,
) -> AnalyticsBundle:
    """Reduce raw collections into the dashboard bundle for *filters* at *now*.

    Only completed orders participate. The previous window has the same
    duration as the current one and ends 1ms before it; both are subject to
    the same order-type / category / employee filters. Empty inputs yield a
    zeroed bundle. Inventory risks look at every completed order regardless
    of window or filters; staff outliers only at the current window.
    Raises ``InvalidFilter`` for an unknown date range.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window = derive_window(filters, now)
    prev_window = previous_window(window)

    products = _index_by_id(raw.products)
    users = _index_by_id(raw.users)

    completed = [
        _normalize_order(key, doc, now.tzinfo)
        for key, doc in enumerate(raw.orders)
        if doc.get("status") == COMPLETED
    ]
    eligible = [o for o in completed if _matches_dimensions(o, filters, products)]
    current = [o for o in eligible if _in_window(o, window)]
    previous = [o for o in eligible if _in_window(o, prev_window)]

    current_metrics = _period_metrics(current)
    previous_metrics = _period_metrics(previous)
    growth_metrics = GrowthMetrics(
        revenue=growth(current_metrics.total_revenue, previous_metrics.total_revenue),
        orders=growth(current_metrics.total_orders, previous_metrics.total_orders),
        items=growth(current_metrics.total_items_sold, previous_metrics.total_items_sold),
        aov=growth(current_metrics.avg_order_value, previous_metrics.avg_order_value),
    )

    open_start = filters.date_range == DateRange.ALL.value or (
        filters.date_range == DateRange.CUSTOM.value and filters.start_date is None
    )
    trend = _revenue_trend(current, window, open_start)
    top_products = _top_products(current, products)
    categories = _category_performance(current, previous, products)
    low_stock = _low_stock(raw.products, low_stock_limit)
    inventory_risks = detect_inventory_risks(raw.products, _last_sale_by_product(completed), now)
    employee_outliers = find_aov_outliers(
        _revenues_by_employee(current),
        {user_id: _display_name(user) for user_id, user in users.items()},
    )

    logger.info(
        "Computed analytics (%s): %d current / %d previous orders",
        filters.date_range, len(current), len(previous),
    )

    return AnalyticsBundle(
        window=window,
        previous_window=prev_window,
        current=current_metrics,
        previous=previous_metrics,
        growth=growth_metrics,
        revenue_trend=trend,
        max_revenue=max([Decimal("1"), *(p.revenue for p in trend)]),
        top_products=top_products,
        category_performance=categories,
        employee_performance=_employee_performance(current, users),
        low_stock_products=low_stock,
        insights=(
            generate_insights(growth_metrics, top_products, categories, low_stock, lang)
            + generate_risk_insights(trend, inventory_risks, employee_outliers, lang)
        ),
        revenue_forecast=predict_revenue(trend, forecast_days),
        inventory_risks=inventory_risks,
        employee_outliers=employee_outliers,
    )


def list_filter_options(raw: RawData) -> FilterOptions:
    """Employee and category choices for the dashboard filter bar."""
    employees = sorted(
        (
            EmployeeOption(id=str(u["id"]), name=_display_name(u))
            for u in raw.users
            if u.get("role") == "employee" and u.get("id") is not None
        ),
        key=lambda e: (e.name, e.id),
    )
    categories = sorted({str(p["category"]) for p in raw.products if p.get("category")})
    return FilterOptions(employees=employees, categories=categories)
