"""Rendering helpers for orders, statuses and money."""

from __future__ import annotations

from datetime import tzinfo

from rich.text import Text

from teapos.config import CURRENCY_SUFFIX, WALK_IN_LABEL
from teapos.data import ice_label, payment_method_label, status_icon, status_text, sugar_label
from teapos.models import Order

_STATUS_STYLES = {
    "pending": "bold #1f1300 on #f0b429",
    "preparing": "bold #ffffff on #2f6db5",
    "completed": "bold #0b1f0f on #5fbf72",
    "cancelled": "bold #ffffff on #b23a48",
}


def badge_style(status: str) -> str:
    """Return a consistent badge style for an order status."""
    return _STATUS_STYLES.get(status, "bold #ffffff on #555555")


def format_money(amount: int) -> str:
    """Format a minor-unit amount the way the shop prints it: 40.000đ."""
    return f"{amount:,}".replace(",", ".") + CURRENCY_SUFFIX


def format_payment(source_payment: dict[str, int]) -> str:
    parts = [
        f"{payment_method_label(method)}: {format_money(amount)}"
        for method, amount in source_payment.items()
        if amount
    ]
    return " + ".join(parts) or "Chưa xác định"


def table_display(order: Order, walk_in_label: str = WALK_IN_LABEL) -> str:
    if order.table_label == walk_in_label:
        return "Khách vãng lai"
    return f"Bàn {order.table_label}"


def format_status_badge(status: str) -> Text:
    text = Text()
    text.append(f" {status_icon(status)} {status_text(status)} ", style=badge_style(status))
    return text


def format_order_label(order: Order) -> Text:
    """One-line order summary: status badge, short id, table and total."""
    text = format_status_badge(order.status)
    short_id = (order.order_id or "")[-8:]
    text.append(f" #{short_id} ", style="bold")
    text.append(table_display(order))
    text.append(f"  {format_money(order.total_price)}", style="bold")
    return text


def format_order_items(order: Order) -> Text:
    """Item lines with size, sugar/ice, toppings and note."""
    text = Text()
    for idx, item in enumerate(order.items):
        if idx > 0:
            text.append("\n")
        text.append(f"{item.quantity}x {item.product_name}", style="bold")
        if item.is_upsize:
            text.append(" [UP]", style="bold #f0b429")
        text.append(f"  {format_money(item.unit_price)}")
        text.append(f"\n   {sugar_label(item.sugar_level)} · {ice_label(item.ice_level)}", style="dim")
        for topping in item.toppings:
            text.append(f"\n   + {topping.name} x{topping.quantity} ({format_money(topping.price)})")
        if item.note:
            text.append(f"\n   ✎ {item.note}", style="italic")
    return text


def format_timeline(order: Order, tz: tzinfo | None = None) -> Text:
    text = Text()
    for idx, entry in enumerate(order.timeline):
        if idx > 0:
            text.append("\n")
        stamp = entry.timestamp.astimezone(tz) if tz is not None else entry.timestamp
        text.append(f"{stamp:%d/%m %H:%M:%S} ", style="dim")
        text.append(f"{status_icon(entry.status)} {entry.description}")
        text.append(f" ({entry.actor})", style="dim")
    return text
