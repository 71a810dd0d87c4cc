"""Order lifecycle: cart-to-order construction, payment reconciliation, status moves.

Nothing here performs I/O. ``build_order`` returns a creation payload the
caller hands to the store; ``transition`` mutates an order in place and the
caller writes ``order.status_patch()`` back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping

from teapos.config import UPSIZE_SURCHARGE, WALK_IN_LABEL
from teapos.constant import ACTORS, CUSTOMER_TYPES, ORDER_STATUSES, PAYMENT_METHODS, STATUS_TRANSITIONS
from teapos.data import status_description
from teapos.errors import (
    ActorNotPermittedError,
    EmptyCartError,
    InvalidPaymentAmountError,
    InvalidStatusTransitionError,
    MissingTableLabelError,
    NegativePaymentAmountError,
    NoPaymentMethodSelectedError,
    PaymentAmountMismatchError,
    UnknownPaymentMethodError,
)
from teapos.models import CartLine, Order, OrderItem, OrderTopping, TimelineEntry


@dataclass(frozen=True)
class OrderContext:
    """Who the order is for and how it is paid.

    ``source_payment`` maps each selected method to its amount. A single
    selected method may leave its amount as ``None`` to take the full total.
    """

    customer_type: str = "table"
    table_label: str = ""
    source_payment: Mapping[str, int | None] = field(default_factory=dict)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def line_total(line: CartLine, upsize_surcharge: int = UPSIZE_SURCHARGE) -> int:
    """Price of one cart line: product, upsize and toppings."""
    total = line.product.price * line.quantity
    if line.is_upsize:
        total += upsize_surcharge * line.quantity
    total += sum(t.topping.price * t.quantity for t in line.toppings)
    return total


def cart_total(lines: Iterable[CartLine], upsize_surcharge: int = UPSIZE_SURCHARGE) -> int:
    return sum(line_total(line, upsize_surcharge) for line in lines)


def resolve_payment(selected: Mapping[str, int | None], total: int) -> dict[str, int]:
    """Validate the payment selection against ``total`` and return final amounts."""
    for method in selected:
        if method not in PAYMENT_METHODS:
            raise UnknownPaymentMethodError(method)
    if not selected:
        raise NoPaymentMethodSelectedError()

    if len(selected) == 1:
        method, amount = next(iter(selected.items()))
        amounts = {method: total if amount is None else amount}
    else:
        amounts = {method: 0 if amount is None else amount for method, amount in selected.items()}

    for method, amount in amounts.items():
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidPaymentAmountError(method, amount)
        if amount < 0:
            raise NegativePaymentAmountError(method, amount)
    if not any(amount > 0 for amount in amounts.values()):
        raise NoPaymentMethodSelectedError()

    given = sum(amounts.values())
    if given != total:
        raise PaymentAmountMismatchError(given=given, expected=total)
    return amounts


def _snapshot(line: CartLine, customer_type: str) -> OrderItem:
    return OrderItem(
        product_id=line.product.product_id,
        product_name=line.product.name,
        quantity=line.quantity,
        unit_price=line.product.price,
        is_upsize=line.is_upsize,
        sugar_level=line.sugar_level,
        ice_level=line.ice_level,
        note=line.note,
        toppings=tuple(
            OrderTopping(
                topping_id=t.topping.topping_id,
                name=t.topping.name,
                quantity=t.quantity,
                price=t.topping.price,
            )
            for t in line.toppings
        ),
        customer_type=customer_type,
    )


def build_order(
    cart: Iterable[CartLine],
    context: OrderContext,
    *,
    upsize_surcharge: int = UPSIZE_SURCHARGE,
    walk_in_label: str = WALK_IN_LABEL,
    now: datetime | None = None,
) -> Order:
    """Validate a cart and payment selection and build a pending order payload.

    Checks run in a fixed order and stop at the first failure: empty cart,
    missing table number, no payment method, amount mismatch.
    """
    lines = list(cart)
    if not lines:
        raise EmptyCartError()
    for line in lines:
        if line.quantity <= 0:
            raise ValueError(f"Cart line {line.line_id} has non-positive quantity {line.quantity}")

    if context.customer_type not in CUSTOMER_TYPES:
        raise ValueError(f"Unknown customer type: {context.customer_type!r}")
    if context.customer_type == "table":
        table_label = context.table_label.strip()
        if not table_label:
            raise MissingTableLabelError()
    else:
        table_label = walk_in_label

    total = cart_total(lines, upsize_surcharge)
    payment = resolve_payment(context.source_payment, total)

    created = now or _utc_now()
    return Order(
        order_id=None,
        table_label=table_label,
        items=tuple(_snapshot(line, context.customer_type) for line in lines),
        total_price=total,
        source_payment=payment,
        status="pending",
        is_cancelled=False,
        timeline=[
            TimelineEntry(
                status="pending",
                timestamp=created,
                description=status_description("pending"),
                actor="staff",
            )
        ],
    )


def allowed_targets(status: str) -> dict[str, str]:
    """Map each status reachable from ``status`` to the actor allowed to make the move."""
    return {to: actor for (frm, to), actor in STATUS_TRANSITIONS.items() if frm == status}


def can_transition(order: Order, new_status: str, actor: str) -> bool:
    return STATUS_TRANSITIONS.get((order.status, new_status)) == actor


def transition(order: Order, new_status: str, actor: str, *, now: datetime | None = None) -> TimelineEntry:
    """Move ``order`` to ``new_status`` and append one timeline entry.

    Raises InvalidStatusTransitionError when the edge does not exist (self
    loops and moves out of a terminal state included) and
    ActorNotPermittedError when the edge exists for a different actor.
    """
    if actor not in ACTORS:
        raise ValueError(f"Unknown actor: {actor!r}")
    if new_status not in ORDER_STATUSES:
        raise InvalidStatusTransitionError(order.status, new_status)

    # A legacy isCancelled flag pins the order in the cancelled state.
    current = "cancelled" if order.cancelled else order.status
    allowed = STATUS_TRANSITIONS.get((current, new_status))
    if allowed is None:
        raise InvalidStatusTransitionError(order.status, new_status)
    if allowed != actor:
        raise ActorNotPermittedError(order.status, new_status, actor, allowed)

    timestamp = now or _utc_now()
    if order.timeline and timestamp < order.timeline[-1].timestamp:
        timestamp = order.timeline[-1].timestamp

    entry = TimelineEntry(
        status=new_status,
        timestamp=timestamp,
        description=status_description(new_status),
        actor=actor,
    )
    order.timeline.append(entry)
    order.status = new_status
    if new_status == "cancelled":
        order.is_cancelled = True
    return entry
