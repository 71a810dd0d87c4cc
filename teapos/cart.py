"""Client-side cart: selected products and their customizations before submit."""

from __future__ import annotations

import logging
from typing import Iterator
from uuid import uuid4

from teapos.config import UPSIZE_SURCHARGE
from teapos.constant import ICE_LEVELS, SUGAR_LEVELS
from teapos.data import topping_by_id
from teapos.errors import InactiveProductError
from teapos.lifecycle import cart_total
from teapos.models import CartLine, CartTopping, Product

logger = logging.getLogger(__name__)


class Cart:
    """Ordered cart lines keyed by a client-side line id."""

    def __init__(self) -> None:
        self.lines: list[CartLine] = []

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __bool__(self) -> bool:
        return bool(self.lines)

    def add_product(self, product: Product) -> CartLine:
        """Append a fresh line for ``product``; the same product twice gives two lines."""
        if not product.is_active:
            raise InactiveProductError(product.name)
        line = CartLine(line_id=uuid4().hex, product=product)
        self.lines.append(line)
        logger.debug("cart add product=%s line=%s", product.product_id, line.line_id)
        return line

    def line(self, line_id: str) -> CartLine:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise KeyError(line_id)

    def remove(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.line_id != line_id]

    def clear(self) -> None:
        self.lines.clear()

    def set_quantity(self, line_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(line_id)
            return
        self.line(line_id).quantity = quantity

    def add_topping(self, line_id: str, topping_id: str | int) -> None:
        topping = topping_by_id(topping_id)
        line = self.line(line_id)
        for existing in line.toppings:
            if existing.topping.topping_id == topping.topping_id:
                existing.quantity += 1
                return
        line.toppings.append(CartTopping(topping=topping, quantity=1))

    def set_topping_quantity(self, line_id: str, topping_id: str | int, quantity: int) -> None:
        line = self.line(line_id)
        key = str(topping_id)
        if quantity <= 0:
            line.toppings = [t for t in line.toppings if t.topping.topping_id != key]
            return
        for existing in line.toppings:
            if existing.topping.topping_id == key:
                existing.quantity = quantity
                return
        line.toppings.append(CartTopping(topping=topping_by_id(key), quantity=quantity))

    def set_note(self, line_id: str, note: str) -> None:
        self.line(line_id).note = note

    def set_upsize(self, line_id: str, is_upsize: bool) -> None:
        self.line(line_id).is_upsize = is_upsize

    def set_sugar_level(self, line_id: str, level: str) -> None:
        if level not in SUGAR_LEVELS:
            raise ValueError(f"Unknown sugar level: {level!r}")
        self.line(line_id).sugar_level = level

    def set_ice_level(self, line_id: str, level: str) -> None:
        if level not in ICE_LEVELS:
            raise ValueError(f"Unknown ice level: {level!r}")
        self.line(line_id).ice_level = level

    def total(self, upsize_surcharge: int = UPSIZE_SURCHARGE) -> int:
        return cart_total(self.lines, upsize_surcharge)
