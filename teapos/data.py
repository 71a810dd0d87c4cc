"""Static topping, level and status data."""

from __future__ import annotations

from teapos.constant import (
    ICE_LEVELS,
    PAYMENT_METHODS,
    STATUS_DESCRIPTIONS,
    STATUS_LABELS,
    SUGAR_LEVELS,
    TOPPING_CATALOG as _TOPPING_CATALOG_RAW,
)
from teapos.errors import UnknownToppingError
from teapos.models import Topping

TOPPINGS: dict[str, Topping] = {
    topping_id: Topping(
        topping_id=topping_id,
        name=str(meta["name"]),
        price=int(meta["price"]),
        glyph=str(meta["glyph"]),
    )
    for topping_id, meta in _TOPPING_CATALOG_RAW.items()
}


def topping_by_id(topping_id: str | int) -> Topping:
    """Look up a catalog topping, raising UnknownToppingError if absent."""
    topping = TOPPINGS.get(str(topping_id))
    if topping is None:
        raise UnknownToppingError(str(topping_id))
    return topping


def status_description(status: str) -> str:
    """Timeline text recorded for a status change."""
    return STATUS_DESCRIPTIONS.get(status, f"Trạng thái: {status}")


def status_text(status: str) -> str:
    label = STATUS_LABELS.get(status)
    if label is None:
        return status or "Chưa xác định"
    return label["text"]


def status_icon(status: str) -> str:
    label = STATUS_LABELS.get(status)
    return label["icon"] if label is not None else "❓"


def sugar_label(level: str) -> str:
    return SUGAR_LEVELS.get(level, level)


def ice_label(level: str) -> str:
    return ICE_LEVELS.get(level, level)


def payment_method_label(method: str) -> str:
    return PAYMENT_METHODS.get(method, method)
