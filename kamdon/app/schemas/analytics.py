"""Pydantic schemas for the owner analytics dashboard."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class DateRange(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"
    ALL = "all"


# ── Inputs ───────────────────────────────────────────────────────────────────


class AnalyticsFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Kept as a plain string; the reducer raises InvalidFilter for unknown values.
    date_range: str = DateRange.MONTH.value
    start_date: date | None = None
    end_date: date | None = None
    order_type: str = "all"
    category: str = "all"
    employee: str = "all"


class RawData(BaseModel):
    """Collections exactly as read from the document store."""

    orders: list[dict[str, Any]] = []
    products: list[dict[str, Any]] = []
    users: list[dict[str, Any]] = []


class AnalyticsRequest(RawData):
    filter: AnalyticsFilter = AnalyticsFilter()
    now: datetime | None = None


# ── Outputs ──────────────────────────────────────────────────────────────────


class AnalyticsWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class PeriodMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_revenue: Decimal = Decimal("0")
    total_orders: int = 0
    total_items_sold: int = 0
    avg_order_value: Decimal = Decimal("0")


class GrowthMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    revenue: Decimal = Decimal("0")
    orders: Decimal = Decimal("0")
    items: Decimal = Decimal("0")
    aov: Decimal = Decimal("0")


class TrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    revenue: Decimal
    orders: int


class TopProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sku: str | None = None
    category: str | None = None
    revenue: Decimal
    quantity: int


class CategoryPerformance(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    revenue: Decimal
    orders: int
    avg_value: Decimal
    growth: Decimal


class EmployeePerformance(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    revenue: Decimal
    orders: int
    avg_order: Decimal


class LowStockProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sku: str | None = None
    category: str | None = None
    stock_qty: int
    low_stock_threshold: int


class InventoryRisk(BaseModel):
    """Product holding stock that has not sold for longer than its category allows."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sku: str | None = None
    category: str | None = None
    stock_qty: int
    days_inactive: int
    never_sold: bool = False
    value_at_risk: Decimal


class InventoryRisks(BaseModel):
    model_config = ConfigDict(frozen=True)

    dead_stock: tuple[InventoryRisk, ...] = ()
    slow_moving: tuple[InventoryRisk, ...] = ()
    # Active products with neither a sale nor a creation date
    insufficient_data: tuple[str, ...] = ()


class EmployeeOutlier(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    orders: int
    avg_order_value: Decimal
    z_score: Decimal
    deviation_percent: Decimal


class InsightType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    ALERT = "alert"


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    type: InsightType
    title: str
    message: str
    action: str | None = None


class ForecastPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    value: int
    lower_bound: int
    upper_bound: int
    is_projection: bool = True


class AnalyticsBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    window: AnalyticsWindow
    previous_window: AnalyticsWindow
    current: PeriodMetrics
    previous: PeriodMetrics
    growth: GrowthMetrics
    revenue_trend: tuple[TrendPoint, ...]
    max_revenue: Decimal
    top_products: tuple[TopProduct, ...]
    category_performance: tuple[CategoryPerformance, ...]
    employee_performance: tuple[EmployeePerformance, ...]
    low_stock_products: tuple[LowStockProduct, ...]
    insights: tuple[Insight, ...]
    revenue_forecast: tuple[ForecastPoint, ...] | None = None
    inventory_risks: InventoryRisks = InventoryRisks()
    # None when there are too few employees or orders to compare
    employee_outliers: tuple[EmployeeOutlier, ...] | None = None


class EmployeeOption(BaseModel):
    id: str
    name: str


class FilterOptions(BaseModel):
    employees: list[EmployeeOption]
    categories: list[str]
