"""Dashboard statistics: pure folds over orders, products and categories.

All bucketing happens in the shop's local timezone. Revenue figures only count
orders that are not cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from teapos.config import TIMEZONE
from teapos.constant import DATE_PRESET_DAYS, NO_DATA_LABEL, ORDER_FILTERS, ORDER_STATUSES
from teapos.models import Category, Order, Product


@dataclass(frozen=True)
class TimeBucket:
    key: str
    label: str
    orders: int = 0
    revenue: int = 0


@dataclass(frozen=True)
class ProductSales:
    product_id: str
    product_name: str
    quantity: int
    revenue: int


@dataclass(frozen=True)
class RevenueSummary:
    order_count: int
    total_revenue: int
    average_order_value: float
    cash_revenue: int
    transfer_revenue: int


@dataclass(frozen=True)
class DashboardStats:
    total_orders: int
    today_orders: int
    total_revenue: int
    cash_revenue: int
    transfer_revenue: int
    average_order_value: float
    cancelled_orders: int
    total_products: int
    total_categories: int


def _zone(tz: tzinfo | str | None) -> tzinfo:
    if tz is None:
        return ZoneInfo(TIMEZONE)
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def _local(order: Order, tz: tzinfo) -> datetime:
    created = order.created_at or datetime.fromtimestamp(0, timezone.utc)
    return created.astimezone(tz)


def partition_orders(orders: Iterable[Order]) -> tuple[list[Order], list[Order]]:
    """Split into (active, cancelled). Either cancel marker counts as cancelled."""
    active: list[Order] = []
    cancelled: list[Order] = []
    for order in orders:
        (cancelled if order.cancelled else active).append(order)
    return active, cancelled


def filter_by_status(orders: Iterable[Order], *statuses: str) -> list[Order]:
    for status in statuses:
        if status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {status!r}")
    return [order for order in orders if order.status in statuses]


def filter_by_date_range(orders: Iterable[Order], start: datetime | None, end: datetime | None) -> list[Order]:
    """Orders created within [start, end]; either bound may be open."""
    result = []
    for order in orders:
        if order.created_at is None:
            continue
        if start is not None and order.created_at < start:
            continue
        if end is not None and order.created_at > end:
            continue
        result.append(order)
    return result


def filter_orders(
    orders: Iterable[Order],
    name: str,
    *,
    now: datetime | None = None,
    tz: tzinfo | str | None = None,
) -> list[Order]:
    """Apply one of the order-list filters (all, today, per-status, incomplete, cancelled)."""
    if name not in ORDER_FILTERS:
        raise ValueError(f"Unknown order filter: {name!r}")
    if name == "all":
        return list(orders)
    if name == "today":
        zone = _zone(tz)
        today = (now or datetime.now(timezone.utc)).astimezone(zone).date()
        return [o for o in orders if o.created_at is not None and _local(o, zone).date() == today]
    if name == "incomplete":
        return [o for o in orders if o.status != "completed" and not o.cancelled]
    if name == "cancelled":
        return [o for o in orders if o.cancelled]
    return [o for o in orders if o.status == name]


def date_range_for_preset(
    preset: str,
    *,
    now: datetime | None = None,
    tz: tzinfo | str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Resolve a date preset to a (start, end) pair; open bounds are None.

    ``custom`` spans local start of ``start_date`` to local end of
    ``end_date``; without both dates it falls back to everything.
    """
    current = now or datetime.now(timezone.utc)
    if preset == "all":
        return (None, None)
    if preset in DATE_PRESET_DAYS:
        return (current - timedelta(days=DATE_PRESET_DAYS[preset]), None)
    if preset == "custom":
        if start_date is None or end_date is None:
            return (None, None)
        zone = _zone(tz)
        start = datetime.combine(start_date, time.min, tzinfo=zone)
        end = datetime.combine(end_date, time.max, tzinfo=zone)
        return (start, end)
    raise ValueError(f"Unknown date preset: {preset!r}")


def payment_split(orders: Iterable[Order]) -> dict[str, int]:
    split = {"cash": 0, "transfer": 0}
    for order in orders:
        for method in split:
            amount = order.source_payment.get(method, 0)
            if amount > 0:
                split[method] += amount
    return split


def revenue_summary(orders: Sequence[Order]) -> RevenueSummary:
    total = sum(order.total_price for order in orders)
    split = payment_split(orders)
    return RevenueSummary(
        order_count=len(orders),
        total_revenue=total,
        average_order_value=total / len(orders) if orders else 0.0,
        cash_revenue=split["cash"],
        transfer_revenue=split["transfer"],
    )


def summarize(
    orders: Sequence[Order],
    products: Sequence[Product],
    categories: Sequence[Category],
    *,
    preset: str = "7days",
    now: datetime | None = None,
    tz: tzinfo | str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> DashboardStats:
    """Headline numbers for the dashboard over the chosen date preset."""
    active, cancelled = partition_orders(orders)
    start, end = date_range_for_preset(preset, now=now, tz=tz, start_date=start_date, end_date=end_date)
    filtered = active if start is None and end is None else filter_by_date_range(active, start, end)
    revenue = revenue_summary(filtered)
    return DashboardStats(
        total_orders=revenue.order_count,
        today_orders=len(filter_orders(filtered, "today", now=now, tz=tz)),
        total_revenue=revenue.total_revenue,
        cash_revenue=revenue.cash_revenue,
        transfer_revenue=revenue.transfer_revenue,
        average_order_value=revenue.average_order_value,
        cancelled_orders=len(cancelled),
        total_products=len(products),
        total_categories=len(categories),
    )


def _bucketize(orders: Iterable[Order], key_of, label_of) -> list[TimeBucket]:
    counts: dict[str, list[int]] = {}
    labels: dict[str, str] = {}
    for order in orders:
        key = key_of(order)
        if key not in counts:
            counts[key] = [0, 0]
            labels[key] = label_of(order)
        counts[key][0] += 1
        counts[key][1] += order.total_price
    return [TimeBucket(key=k, label=labels[k], orders=v[0], revenue=v[1]) for k, v in sorted(counts.items())]


def daily_revenue(orders: Iterable[Order], tz: tzinfo | str | None = None) -> list[TimeBucket]:
    zone = _zone(tz)
    return _bucketize(
        orders,
        lambda o: _local(o, zone).date().isoformat(),
        lambda o: _local(o, zone).strftime("%d/%m"),
    )


def hourly_breakdown(orders: Iterable[Order], tz: tzinfo | str | None = None) -> list[TimeBucket]:
    """Order count and revenue for each hour 0-23, empty hours included."""
    zone = _zone(tz)
    counts = [[0, 0] for _ in range(24)]
    for order in orders:
        hour = _local(order, zone).hour
        counts[hour][0] += 1
        counts[hour][1] += order.total_price
    return [
        TimeBucket(key=f"{hour:02d}", label=f"{hour}:00", orders=n, revenue=revenue)
        for hour, (n, revenue) in enumerate(counts)
    ]


def _week_start(day: date) -> date:
    # Weeks start on Sunday; date.weekday() has Monday as 0.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def weekly_trends(orders: Iterable[Order], tz: tzinfo | str | None = None) -> list[TimeBucket]:
    zone = _zone(tz)
    return _bucketize(
        orders,
        lambda o: _week_start(_local(o, zone).date()).isoformat(),
        lambda o: f"Tuần {-(-_local(o, zone).day // 7)}",
    )


def monthly_comparison(orders: Iterable[Order], tz: tzinfo | str | None = None) -> list[TimeBucket]:
    zone = _zone(tz)
    return _bucketize(
        orders,
        lambda o: _local(o, zone).strftime("%Y-%m"),
        lambda o: f"{_local(o, zone).month}/{_local(o, zone).year}",
    )


def top_products(orders: Iterable[Order], limit: int = 10) -> list[ProductSales]:
    """Best sellers by item revenue (unit price times quantity)."""
    sales: dict[str, list] = {}
    for order in orders:
        for item in order.items:
            entry = sales.setdefault(item.product_id, [item.product_name, 0, 0])
            entry[1] += item.quantity
            entry[2] += item.unit_price * item.quantity
    ranked = sorted(sales.items(), key=lambda kv: kv[1][2], reverse=True)
    return [
        ProductSales(product_id=pid, product_name=name, quantity=qty, revenue=revenue)
        for pid, (name, qty, revenue) in ranked[:limit]
    ]


def peak_hour(orders: Iterable[Order], tz: tzinfo | str | None = None) -> int | None:
    buckets = hourly_breakdown(orders, tz)
    best = max(buckets, key=lambda b: b.orders)
    return int(best.key) if best.orders else None


def best_selling_category(
    orders: Iterable[Order],
    products: Iterable[Product],
    categories: Iterable[Category],
) -> str:
    """Category name with the most items sold; the no-data label when nothing matches."""
    product_category = {p.product_id: p.category_id for p in products}
    category_names = {c.category_id: c.name for c in categories}
    sold: dict[str, int] = {}
    for order in orders:
        for item in order.items:
            name = category_names.get(product_category.get(item.product_id) or "")
            if name is not None:
                sold[name] = sold.get(name, 0) + item.quantity
    if not sold:
        return NO_DATA_LABEL
    return max(sold, key=lambda name: sold[name])


def recent_orders(orders: Iterable[Order], limit: int = 5) -> list[Order]:
    active, _ = partition_orders(orders)
    ordered = sorted(
        active,
        key=lambda o: o.created_at or datetime.fromtimestamp(0, timezone.utc),
        reverse=True,
    )
    return ordered[:limit]
