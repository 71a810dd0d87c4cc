"""Domain models for teapos.

Store records use the backend's column names (``product_id``, ``time_line``,
``sourcePayment`` ...). Each entity translates to and from that shape here so
that nothing past this module trusts an ad-hoc dict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

from teapos.constant import DEFAULT_ICE_LEVEL, DEFAULT_PRODUCT_GLYPH, DEFAULT_SUGAR_LEVEL
from teapos.errors import RecordValidationError

OrderStatus = Literal["pending", "preparing", "completed", "cancelled"]
Actor = Literal["staff", "kitchen"]
CustomerType = Literal["table", "walkin"]

_MISSING = object()


def _field(record: Mapping[str, Any], key: str, kind: type | tuple[type, ...], entity: str, default: Any = _MISSING) -> Any:
    value = record.get(key, _MISSING)
    if value is _MISSING or value is None:
        if default is not _MISSING:
            return default
        raise RecordValidationError(f"{entity} record is missing {key!r}")
    # bool is an int subclass; numeric fields must not accept it.
    if kind is int and isinstance(value, bool):
        raise RecordValidationError(f"{entity}.{key} must be int, got bool")
    if not isinstance(value, kind):
        raise RecordValidationError(f"{entity}.{key} has type {type(value).__name__}")
    return value


def _non_negative(value: int, entity: str, key: str) -> int:
    if value < 0:
        raise RecordValidationError(f"{entity}.{key} must not be negative")
    return value


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise RecordValidationError(f"Bad timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_timestamp(record: Mapping[str, Any], key: str) -> datetime | None:
    value = record.get(key)
    if value is None:
        return None
    return parse_timestamp(value)


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Topping:
    """A paid add-on from the fixed topping catalog."""

    topping_id: str
    name: str
    price: int
    glyph: str


@dataclass(frozen=True)
class Category:
    category_id: str
    name: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Category:
        return cls(
            category_id=str(_field(record, "category_id", (str, int), "category")),
            name=_field(record, "category_name", str, "category"),
            created_at=_optional_timestamp(record, "created_at"),
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {"category_name": self.name}
        if self.category_id:
            record["category_id"] = self.category_id
        if self.created_at is not None:
            record["created_at"] = _format_timestamp(self.created_at)
        return record


@dataclass(frozen=True)
class Product:
    """A catalog product. Inactive products are listed but cannot be ordered."""

    product_id: str
    name: str
    price: int
    category_id: str | None = None
    image: str = DEFAULT_PRODUCT_GLYPH
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Product:
        category_id = record.get("category_id")
        return cls(
            product_id=str(_field(record, "product_id", (str, int), "product")),
            name=_field(record, "product_name", str, "product"),
            price=_non_negative(_field(record, "product_price", int, "product"), "product", "product_price"),
            category_id=str(category_id) if category_id is not None else None,
            image=_field(record, "product_img", str, "product", default=DEFAULT_PRODUCT_GLYPH) or DEFAULT_PRODUCT_GLYPH,
            is_active=_field(record, "isActive", bool, "product", default=True),
            created_at=_optional_timestamp(record, "created_at"),
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "product_name": self.name,
            "product_price": self.price,
            "product_img": self.image,
            "category_id": self.category_id,
            "isActive": self.is_active,
        }
        if self.product_id:
            record["product_id"] = self.product_id
        if self.created_at is not None:
            record["created_at"] = _format_timestamp(self.created_at)
        return record


@dataclass
class CartTopping:
    topping: Topping
    quantity: int = 1


@dataclass
class CartLine:
    """One product in the cart with its customizations. Never persisted."""

    line_id: str
    product: Product
    quantity: int = 1
    toppings: list[CartTopping] = field(default_factory=list)
    note: str = ""
    is_upsize: bool = False
    sugar_level: str = DEFAULT_SUGAR_LEVEL
    ice_level: str = DEFAULT_ICE_LEVEL


@dataclass(frozen=True)
class OrderTopping:
    topping_id: str
    name: str
    quantity: int
    price: int

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> OrderTopping:
        return cls(
            topping_id=str(_field(record, "id", (str, int), "topping")),
            name=_field(record, "name", str, "topping", default=""),
            quantity=_field(record, "quantity", int, "topping"),
            price=_non_negative(_field(record, "price", int, "topping"), "topping", "price"),
        )

    def to_record(self) -> dict[str, Any]:
        return {"id": self.topping_id, "name": self.name, "quantity": self.quantity, "price": self.price}


@dataclass(frozen=True)
class OrderItem:
    """Immutable snapshot of a cart line taken when the order is built."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: int
    is_upsize: bool = False
    sugar_level: str = DEFAULT_SUGAR_LEVEL
    ice_level: str = DEFAULT_ICE_LEVEL
    note: str = ""
    toppings: tuple[OrderTopping, ...] = ()
    customer_type: str = "table"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> OrderItem:
        toppings = _field(record, "toppings", list, "order item", default=[])
        return cls(
            product_id=str(_field(record, "product_id", (str, int), "order item")),
            product_name=_field(record, "product_name", str, "order item"),
            quantity=_field(record, "quantity", int, "order item"),
            unit_price=_non_negative(_field(record, "price", int, "order item"), "order item", "price"),
            is_upsize=_field(record, "isUpsize", bool, "order item", default=False),
            sugar_level=_field(record, "sugarLevel", str, "order item", default=DEFAULT_SUGAR_LEVEL),
            ice_level=_field(record, "iceLevel", str, "order item", default=DEFAULT_ICE_LEVEL),
            note=_field(record, "note", str, "order item", default=""),
            toppings=tuple(OrderTopping.from_record(t) for t in toppings),
            customer_type=_field(record, "customer_type", str, "order item", default="table"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": self.unit_price,
            "isUpsize": self.is_upsize,
            "sugarLevel": self.sugar_level,
            "iceLevel": self.ice_level,
            "note": self.note,
            "toppings": [t.to_record() for t in self.toppings],
            "customer_type": self.customer_type,
        }


@dataclass(frozen=True)
class TimelineEntry:
    status: str
    timestamp: datetime
    description: str
    actor: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> TimelineEntry:
        return cls(
            status=_field(record, "status", str, "timeline entry"),
            timestamp=parse_timestamp(_field(record, "timestamp", (str, datetime), "timeline entry")),
            description=_field(record, "description", str, "timeline entry", default=""),
            actor=_field(record, "actor", str, "timeline entry", default="staff"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": _format_timestamp(self.timestamp),
            "description": self.description,
            "actor": self.actor,
        }


@dataclass
class Order:
    """A submitted order.

    ``items``, ``total_price`` and ``source_payment`` are frozen at creation;
    only ``status``, ``is_cancelled`` and ``timeline`` move afterwards.
    ``order_id`` and ``created_at`` are ``None`` until the store assigns them.
    """

    order_id: str | None
    table_label: str
    items: tuple[OrderItem, ...]
    total_price: int
    source_payment: dict[str, int]
    status: str = "pending"
    is_cancelled: bool = False
    timeline: list[TimelineEntry] = field(default_factory=list)
    created_at: datetime | None = None

    @property
    def cancelled(self) -> bool:
        return self.is_cancelled or self.status == "cancelled"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Order:
        payment = _field(record, "sourcePayment", dict, "order", default={})
        for method, amount in payment.items():
            if isinstance(amount, bool) or not isinstance(amount, int):
                raise RecordValidationError(f"order.sourcePayment[{method!r}] must be int")
        return cls(
            order_id=str(_field(record, "order_id", (str, int), "order")),
            table_label=_field(record, "table_number", str, "order"),
            items=tuple(OrderItem.from_record(item) for item in _field(record, "items", list, "order")),
            total_price=_non_negative(_field(record, "total_price", int, "order"), "order", "total_price"),
            source_payment=dict(payment),
            status=_field(record, "status", str, "order", default="pending"),
            is_cancelled=_field(record, "isCancelled", bool, "order", default=False),
            timeline=[TimelineEntry.from_record(e) for e in _field(record, "time_line", list, "order", default=[])],
            created_at=_optional_timestamp(record, "created_at"),
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "table_number": self.table_label,
            "items": [item.to_record() for item in self.items],
            "total_price": self.total_price,
            "sourcePayment": dict(self.source_payment),
            "isCancelled": self.is_cancelled,
            "status": self.status,
            "time_line": [entry.to_record() for entry in self.timeline],
        }
        if self.order_id is not None:
            record["order_id"] = self.order_id
        if self.created_at is not None:
            record["created_at"] = _format_timestamp(self.created_at)
        return record

    def status_patch(self) -> dict[str, Any]:
        """Return the only fields a status change is allowed to write back."""
        return {
            "status": self.status,
            "isCancelled": self.is_cancelled,
            "time_line": [entry.to_record() for entry in self.timeline],
        }
