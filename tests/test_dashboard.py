from datetime import date, datetime, timedelta, timezone

import pytest

from teapos.dashboard import (
    best_selling_category,
    daily_revenue,
    date_range_for_preset,
    filter_by_date_range,
    filter_by_status,
    filter_orders,
    hourly_breakdown,
    monthly_comparison,
    partition_orders,
    payment_split,
    peak_hour,
    recent_orders,
    revenue_summary,
    summarize,
    top_products,
    weekly_trends,
)
from teapos.models import Category, Order, OrderItem, Product

UTC = timezone.utc
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def make_order(order_id, created_at, total, status="pending", payment=None, items=(), is_cancelled=False):
    return Order(
        order_id=order_id,
        table_label="1",
        items=tuple(items),
        total_price=total,
        source_payment=payment or {"cash": total},
        status=status,
        is_cancelled=is_cancelled,
        created_at=created_at,
    )


def item(product_id, name, quantity, price):
    return OrderItem(product_id=product_id, product_name=name, quantity=quantity, unit_price=price)


@pytest.fixture
def orders():
    return [
        make_order("o1", NOW - timedelta(hours=2), 40000, "completed", items=[item("p-a", "Trà sữa", 2, 20000)]),
        make_order(
            "o2",
            NOW - timedelta(hours=1),
            45000,
            "preparing",
            payment={"cash": 15000, "transfer": 30000},
            items=[item("p-b", "Cà phê", 3, 15000)],
        ),
        make_order("o3", NOW - timedelta(days=2), 20000, items=[item("p-a", "Trà sữa", 1, 20000)]),
        make_order("o4", NOW - timedelta(days=40), 30000, "completed", items=[item("p-b", "Cà phê", 2, 15000)]),
        make_order("o5", NOW - timedelta(minutes=5), 99000, "cancelled", items=[item("p-a", "Trà sữa", 5, 20000)]),
        make_order("o6", NOW - timedelta(minutes=3), 10000, "pending", is_cancelled=True),
    ]


def ids(orders):
    return sorted(o.order_id for o in orders)


def test_partition_uses_either_cancel_marker(orders):
    active, cancelled = partition_orders(orders)

    assert ids(active) == ["o1", "o2", "o3", "o4"]
    assert ids(cancelled) == ["o5", "o6"]


def test_filter_by_status(orders):
    assert ids(filter_by_status(orders, "completed")) == ["o1", "o4"]
    assert ids(filter_by_status(orders, "pending", "preparing")) == ["o2", "o3", "o6"]
    with pytest.raises(ValueError):
        filter_by_status(orders, "shipped")


def test_filter_by_date_range_is_inclusive(orders):
    start = NOW - timedelta(hours=2)

    assert ids(filter_by_date_range(orders, start, NOW - timedelta(hours=1))) == ["o1", "o2"]
    assert ids(filter_by_date_range(orders, None, NOW - timedelta(days=2))) == ["o3", "o4"]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("all", ["o1", "o2", "o3", "o4", "o5", "o6"]),
        ("today", ["o1", "o2", "o5", "o6"]),
        ("pending", ["o3", "o6"]),
        ("completed", ["o1", "o4"]),
        ("incomplete", ["o2", "o3"]),
        ("cancelled", ["o5", "o6"]),
    ],
)
def test_order_filters(orders, name, expected):
    assert ids(filter_orders(orders, name, now=NOW, tz=UTC)) == expected


def test_unknown_filter(orders):
    with pytest.raises(ValueError):
        filter_orders(orders, "tomorrow", now=NOW, tz=UTC)


def test_today_follows_shop_timezone():
    # 18:00 UTC is already the next day in Ho Chi Minh City (UTC+7).
    late = make_order("late", datetime(2026, 3, 9, 18, 0, tzinfo=UTC), 10000)
    now = datetime(2026, 3, 10, 1, 0, tzinfo=UTC)

    assert filter_orders([late], "today", now=now, tz=UTC) == []
    assert ids(filter_orders([late], "today", now=now, tz=timezone(timedelta(hours=7)))) == ["late"]


def test_date_presets():
    assert date_range_for_preset("all", now=NOW) == (None, None)
    assert date_range_for_preset("7days", now=NOW) == (NOW - timedelta(days=7), None)
    assert date_range_for_preset("custom", now=NOW) == (None, None)

    start, end = date_range_for_preset(
        "custom", now=NOW, tz=UTC, start_date=date(2026, 3, 1), end_date=date(2026, 3, 2)
    )
    assert start == datetime(2026, 3, 1, tzinfo=UTC)
    assert end.date() == date(2026, 3, 2) and end.hour == 23
    with pytest.raises(ValueError):
        date_range_for_preset("yesterday", now=NOW)


def test_payment_split_and_summary(orders):
    active, _ = partition_orders(orders)

    assert payment_split(active) == {"cash": 40000 + 15000 + 20000 + 30000, "transfer": 30000}
    summary = revenue_summary(active)
    assert summary.total_revenue == 135000
    assert summary.average_order_value == 135000 / 4
    assert revenue_summary([]).average_order_value == 0.0


def test_summarize_excludes_cancelled_revenue(orders):
    products = [Product(product_id="p-a", name="Trà sữa", price=20000)]

    stats = summarize(orders, products, [], preset="7days", now=NOW, tz=UTC)

    assert stats.total_orders == 3
    assert stats.today_orders == 2
    assert stats.total_revenue == 105000
    assert stats.cash_revenue == 75000
    assert stats.transfer_revenue == 30000
    assert stats.cancelled_orders == 2
    assert stats.total_products == 1
    assert stats.total_categories == 0


def test_summarize_all_time(orders):
    stats = summarize(orders, [], [], preset="all", now=NOW, tz=UTC)

    assert stats.total_orders == 4
    assert stats.total_revenue == 135000


def test_daily_and_monthly_buckets(orders):
    active, _ = partition_orders(orders)

    daily = daily_revenue(active, UTC)
    assert [(b.key, b.orders, b.revenue) for b in daily] == [
        ("2026-01-29", 1, 30000),
        ("2026-03-08", 1, 20000),
        ("2026-03-10", 2, 85000),
    ]
    assert daily[-1].label == "10/03"

    monthly = monthly_comparison(active, UTC)
    assert [(b.key, b.orders) for b in monthly] == [("2026-01", 1), ("2026-03", 3)]


def test_weekly_buckets_start_on_sunday():
    saturday = make_order("sat", datetime(2026, 3, 7, 9, 0, tzinfo=UTC), 10000)
    sunday = make_order("sun", datetime(2026, 3, 8, 9, 0, tzinfo=UTC), 20000)
    monday = make_order("mon", datetime(2026, 3, 9, 9, 0, tzinfo=UTC), 30000)

    weeks = weekly_trends([saturday, sunday, monday], UTC)

    assert [(b.key, b.orders, b.revenue) for b in weeks] == [("2026-03-01", 1, 10000), ("2026-03-08", 2, 50000)]


def test_hourly_breakdown_and_peak(orders):
    active, _ = partition_orders(orders)

    hours = hourly_breakdown(active, UTC)

    assert len(hours) == 24
    assert hours[10].orders == 1 and hours[11].orders == 1 and hours[12].orders == 2
    assert hours[0].label == "0:00"
    assert peak_hour(active, UTC) == 12
    assert peak_hour([], UTC) is None


def test_top_products_by_item_revenue(orders):
    active, _ = partition_orders(orders)

    top = top_products(active)

    assert [(p.product_id, p.quantity, p.revenue) for p in top] == [("p-b", 5, 75000), ("p-a", 3, 60000)]
    assert len(top_products(active, limit=1)) == 1


def test_best_selling_category(orders):
    active, _ = partition_orders(orders)
    products = [
        Product(product_id="p-a", name="Trà sữa", price=20000, category_id="c-tea"),
        Product(product_id="p-b", name="Cà phê", price=15000, category_id="c-coffee"),
    ]
    categories = [Category(category_id="c-tea", name="Trà"), Category(category_id="c-coffee", name="Cà phê")]

    assert best_selling_category(active, products, categories) == "Cà phê"
    assert best_selling_category(active, products, []) == "Chưa có dữ liệu"


def test_recent_orders_newest_active_first(orders):
    assert [o.order_id for o in recent_orders(orders, limit=3)] == ["o2", "o1", "o3"]
