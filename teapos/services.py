"""Catalog and order use-cases on top of a session's store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath

from teapos.cart import Cart
from teapos.constant import DEFAULT_PRODUCT_GLYPH, UNCATEGORIZED_LABEL
from teapos.context import Session
from teapos.errors import OrderError, StoreError
from teapos.lifecycle import OrderContext, build_order, transition
from teapos.models import Category, Order, Product

logger = logging.getLogger(__name__)


def _created_key(created_at: datetime | None) -> float:
    return created_at.timestamp() if created_at is not None else 0.0


@dataclass(frozen=True)
class ProductListing:
    """A product joined with its category name for display."""

    product: Product
    category_name: str


class CatalogService:
    """Admin operations on categories and products."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.store = session.store

    def list_categories(self) -> list[Category]:
        categories = [Category.from_record(r) for r in self.store.fetch_all("category")]
        return sorted(categories, key=lambda c: _created_key(c.created_at))

    def create_category(self, name: str) -> Category:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Category name is required")
        try:
            record = self.store.insert("category", {"category_name": cleaned})
        except StoreError as exc:
            logger.error("create category failed: %s", exc)
            raise
        return Category.from_record(record)

    def rename_category(self, category_id: str, name: str) -> Category:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Category name is required")
        try:
            record = self.store.update("category", category_id, {"category_name": cleaned})
        except StoreError as exc:
            logger.error("rename category %s failed: %s", category_id, exc)
            raise
        return Category.from_record(record)

    def delete_category(self, category_id: str) -> bool:
        # Products keep their category_id; listings fall back to the uncategorized label.
        return self.store.delete("category", category_id)

    def list_products(self) -> list[Product]:
        products = [Product.from_record(r) for r in self.store.fetch_all("product")]
        return sorted(products, key=lambda p: _created_key(p.created_at))

    def list_product_listings(self) -> list[ProductListing]:
        names = {c.category_id: c.name for c in self.list_categories()}
        return [
            ProductListing(product=p, category_name=names.get(p.category_id or "", UNCATEGORIZED_LABEL))
            for p in self.list_products()
        ]

    def create_product(
        self,
        name: str,
        price: int,
        category_id: str | None,
        image: str | None = None,
        is_active: bool = True,
    ) -> Product:
        draft = Product(
            product_id="",
            name=_clean_name(name),
            price=_clean_price(price),
            category_id=category_id,
            image=image or DEFAULT_PRODUCT_GLYPH,
            is_active=is_active,
        )
        try:
            record = self.store.insert("product", draft.to_record())
        except StoreError as exc:
            logger.error("create product failed: %s", exc)
            raise
        return Product.from_record(record)

    def update_product(self, product: Product) -> Product:
        record = product.to_record()
        record.pop("product_id", None)
        record.pop("created_at", None)
        record["product_name"] = _clean_name(product.name)
        record["product_price"] = _clean_price(product.price)
        try:
            updated = self.store.update("product", product.product_id, record)
        except StoreError as exc:
            logger.error("update product %s failed: %s", product.product_id, exc)
            raise
        return Product.from_record(updated)

    def delete_product(self, product_id: str) -> bool:
        return self.store.delete("product", product_id)

    def upload_product_image(self, data: bytes, filename: str, product_id: str) -> str:
        """Store an image for ``product_id`` and return its public URL."""
        ext = PurePath(filename).suffix.lstrip(".").lower() or "bin"
        stamp = int(self.session.now().timestamp() * 1000)
        path_hint = f"{self.session.settings.image_bucket}/products/product_{product_id}_{stamp}.{ext}"
        try:
            return self.store.upload_asset(data, path_hint)
        except StoreError as exc:
            logger.error("upload image for product %s failed: %s", product_id, exc)
            raise


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Product name is required")
    return cleaned


def _clean_price(price: int) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        raise ValueError(f"Product price must be an integer amount, got {price!r}")
    if price < 0:
        raise ValueError("Product price must not be negative")
    return price


class OrderService:
    """Order submission and status changes."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.store = session.store

    def submit(self, cart: Cart, context: OrderContext) -> Order:
        """Build, validate and persist an order; the cart is cleared only on success."""
        settings = self.session.settings
        try:
            draft = build_order(
                cart,
                context,
                upsize_surcharge=settings.upsize_surcharge,
                walk_in_label=settings.walk_in_label,
                now=self.session.now(),
            )
        except OrderError as exc:
            logger.info("order rejected: %s", exc)
            raise

        try:
            record = self.store.insert("order", draft.to_record())
        except StoreError as exc:
            logger.error("order submit failed: %s", exc)
            raise

        order = Order.from_record(record)
        cart.clear()
        logger.info("order created id=%s table=%s total=%d", order.order_id, order.table_label, order.total_price)
        return order

    def list_orders(self) -> list[Order]:
        """All orders, newest first."""
        orders = [Order.from_record(r) for r in self.store.fetch_all("order")]
        return sorted(orders, key=lambda o: _created_key(o.created_at), reverse=True)

    def get_order(self, order_id: str) -> Order:
        return Order.from_record(self.store.get("order", order_id))

    def advance(self, order_id: str, new_status: str, actor: str | None = None) -> Order:
        """Re-read the order, apply one transition and write back only the status fields."""
        order = self.get_order(order_id)
        who = actor or self.session.actor
        try:
            transition(order, new_status, who, now=self.session.now())
        except OrderError as exc:
            logger.info("transition rejected id=%s: %s", order_id, exc)
            raise

        try:
            record = self.store.update("order", order_id, order.status_patch())
        except StoreError as exc:
            logger.error("transition write failed id=%s: %s", order_id, exc)
            raise
        logger.info("order %s -> %s by %s", order_id, new_status, who)
        return Order.from_record(record)

    def start_preparing(self, order_id: str) -> Order:
        return self.advance(order_id, "preparing", "kitchen")

    def complete(self, order_id: str) -> Order:
        return self.advance(order_id, "completed", "kitchen")

    def cancel(self, order_id: str) -> Order:
        return self.advance(order_id, "cancelled", "staff")
