"""Exception types raised by the order engine and the store boundary."""

from __future__ import annotations


class OrderError(ValueError):
    """Base class for order validation failures surfaced to the operator."""


class EmptyCartError(OrderError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


class MissingTableLabelError(OrderError):
    def __init__(self) -> None:
        super().__init__("Table orders need a table number")


class NoPaymentMethodSelectedError(OrderError):
    def __init__(self) -> None:
        super().__init__("Select at least one payment method with a positive amount")


class UnknownPaymentMethodError(OrderError):
    def __init__(self, method: str) -> None:
        super().__init__(f"Unknown payment method: {method!r}")
        self.method = method


class NegativePaymentAmountError(OrderError):
    def __init__(self, method: str, amount: int) -> None:
        super().__init__(f"Payment amount for {method} cannot be negative: {amount}")
        self.method = method
        self.amount = amount


class InvalidPaymentAmountError(OrderError):
    """A payment amount is not a whole number of minor units."""

    def __init__(self, method: str, amount: object) -> None:
        super().__init__(f"Payment amount for {method} must be a whole amount: {amount!r}")
        self.method = method
        self.amount = amount


class PaymentAmountMismatchError(OrderError):
    """Entered payment amounts do not add up to the order total."""

    def __init__(self, given: int, expected: int) -> None:
        super().__init__(f"Payment total {given} does not match order total {expected}")
        self.given = given
        self.expected = expected


class InvalidStatusTransitionError(OrderError):
    """The requested status change is not an edge of the order state machine."""

    def __init__(self, from_status: str, to_status: str, message: str | None = None) -> None:
        super().__init__(message or f"Cannot move order from {from_status!r} to {to_status!r}")
        self.from_status = from_status
        self.to_status = to_status


class ActorNotPermittedError(InvalidStatusTransitionError):
    def __init__(self, from_status: str, to_status: str, actor: str, allowed: str) -> None:
        super().__init__(
            from_status,
            to_status,
            f"{actor!r} cannot move order from {from_status!r} to {to_status!r} (only {allowed!r})",
        )
        self.actor = actor
        self.allowed = allowed


class InactiveProductError(OrderError):
    def __init__(self, product_name: str) -> None:
        super().__init__(f"Product is not available: {product_name}")
        self.product_name = product_name


class UnknownToppingError(OrderError):
    def __init__(self, topping_id: str) -> None:
        super().__init__(f"Unknown topping: {topping_id!r}")
        self.topping_id = topping_id


class StoreError(RuntimeError):
    """The store collaborator failed; the action can be retried unchanged."""


class RecordNotFoundError(StoreError):
    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"No {kind} with id {record_id!r}")
        self.kind = kind
        self.record_id = record_id


class RecordValidationError(StoreError):
    """A store record is missing a required field or carries the wrong type."""
