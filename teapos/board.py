"""Order board: a Textual app for kitchen and counter staff to move orders along."""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import Header, Static

from teapos.config import FEED_POLL_SECONDS
from teapos.constant import ORDER_FILTERS
from teapos.context import Session
from teapos.dashboard import filter_orders, summarize
from teapos.errors import OrderError, StoreError
from teapos.feed import ChangeFeed, order_collection
from teapos.lifecycle import allowed_targets
from teapos.models import Order
from teapos.order_modal import OrderDetailModal
from teapos.rendering import badge_style, format_money, format_order_items, format_order_label, format_payment
from teapos.services import OrderService

logger = logging.getLogger(__name__)

_ACTION_KEYS = {"preparing": "P", "completed": "C", "cancelled": "X"}


class OrderBoardApp(App):
    """Live order list with status actions, fed by the store's change feed."""

    TITLE = "Order Board"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        border: heavy $secondary;
        padding: 0 1;
        height: 4;
    }

    #main-layout {
        height: 1fr;
    }

    #orders-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #detail-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #orders-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #order-detail {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    filter_name = reactive("incomplete")
    selected_index = reactive(None)

    BINDINGS = [
        Binding("tab", "cycle_filter(1)", "Next filter", priority=True),
        Binding("shift+tab", "cycle_filter(-1)", "Previous filter", priority=True),
        ("j", "move_selection(1)", "Next order"),
        ("k", "move_selection(-1)", "Previous order"),
        ("down", "move_selection(1)", "Next order"),
        ("up", "move_selection(-1)", "Previous order"),
        ("p", "advance('preparing')", "Start preparing"),
        ("c", "advance('completed')", "Complete"),
        ("x", "advance('cancelled')", "Cancel"),
        ("enter", "open_detail", "Details"),
        ("r", "reload", "Reload"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self.orders = OrderService(session)
        self.collection = order_collection()
        self.feed = ChangeFeed(session.store, "order")
        self.tz = ZoneInfo(session.settings.timezone)
        self.system_status = ""
        self.sub_title = session.settings.store_name

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="status-bar")
        with Horizontal(id="main-layout"):
            with Vertical(id="orders-pane"):
                yield Static("Orders", classes="pane-title", id="orders-title")
                yield Static("(no orders)", id="orders-list")
            with Vertical(id="detail-pane"):
                yield Static("Details", classes="pane-title")
                yield Static(id="order-detail")

    def on_mount(self) -> None:
        self.feed.open()
        self.action_reload()
        self.set_interval(FEED_POLL_SECONDS, self._pump_feed)

    def on_unmount(self) -> None:
        self.feed.close()

    def action_reload(self) -> None:
        try:
            self.collection.reset(self.session.store.fetch_all("order"))
        except StoreError as exc:
            self._notify_error(f"Could not load orders: {exc}")
            return
        self.system_status = f"Loaded {len(self.collection)} orders"
        self._refresh_all()

    def action_cycle_filter(self, delta: int) -> None:
        idx = ORDER_FILTERS.index(self.filter_name)
        self.filter_name = ORDER_FILTERS[(idx + delta) % len(ORDER_FILTERS)]
        self.selected_index = 0 if self._visible_orders() else None
        self._refresh_all()

    def action_move_selection(self, delta: int) -> None:
        visible = self._visible_orders()
        if not visible:
            return
        if self.selected_index is None:
            self.selected_index = 0 if delta > 0 else len(visible) - 1
        else:
            self.selected_index = (self.selected_index + delta) % len(visible)
        self._refresh_all()

    def action_advance(self, new_status: str) -> None:
        order = self._selected_order()
        if order is None or order.order_id is None:
            return
        try:
            if new_status == "preparing":
                self.orders.start_preparing(order.order_id)
            elif new_status == "completed":
                self.orders.complete(order.order_id)
            else:
                self.orders.cancel(order.order_id)
        except (OrderError, StoreError) as exc:
            # Leave the board as it was so the action can be retried.
            self._notify_error(str(exc))
            return
        self.system_status = f"#{order.order_id[-8:]} → {new_status}"
        self._pump_feed()
        self._refresh_all()

    def action_open_detail(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        self.push_screen(OrderDetailModal(order, self.tz))

    def _notify_error(self, message: str) -> None:
        logger.warning("board action failed: %s", message)
        self.system_status = f"⚠ {message}"
        self._refresh_status()

    def _pump_feed(self) -> None:
        try:
            changed = self.feed.pump(self.collection)
        except StoreError as exc:
            self._notify_error(f"Resync failed: {exc}")
            return
        if changed:
            self._refresh_all()

    def _visible_orders(self) -> list[Order]:
        matching = filter_orders(self.collection.values(), self.filter_name, now=self.session.now(), tz=self.tz)
        return sorted(matching, key=lambda o: o.created_at.timestamp() if o.created_at else 0.0, reverse=True)

    def _selected_order(self) -> Order | None:
        visible = self._visible_orders()
        if self.selected_index is None or not (0 <= self.selected_index < len(visible)):
            return None
        return visible[self.selected_index]

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_all(self) -> None:
        self._refresh_status()
        self._refresh_orders()
        self._refresh_detail()

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        stats = summarize(self.collection.values(), [], [], preset="all", now=self.session.now(), tz=self.tz)
        text = Text()
        for name in ORDER_FILTERS:
            style = "bold reverse" if name == self.filter_name else "dim"
            text.append(f" {name} ", style=style)
        text.append(
            f"\nToday: {stats.today_orders} orders · Total revenue: {format_money(stats.total_revenue)} · "
            f"{stats.cancelled_orders} cancelled"
        )
        text.append(f"\n{self.system_status or 'Ready'}")
        bar.update(text)

    def _refresh_orders(self) -> None:
        try:
            orders_widget = self.query_one("#orders-list", Static)
        except NoMatches:
            return
        visible = self._visible_orders()
        if not visible:
            self.selected_index = None
            orders_widget.update("(no orders)")
            return

        if self.selected_index is None:
            self.selected_index = 0
        elif self.selected_index >= len(visible):
            self.selected_index = len(visible) - 1

        rows = self._visible_rows(orders_widget)
        start, end = self._window_bounds(len(visible), rows, self.selected_index)

        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")

        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_order_label(visible[idx]))

        if end < len(visible):
            lines.append("\n⋮", style="dim")

        orders_widget.update(lines)

    def _refresh_detail(self) -> None:
        try:
            detail = self.query_one("#order-detail", Static)
        except NoMatches:
            return
        order = self._selected_order()
        if order is None:
            detail.update("")
            return

        text = format_order_items(order)
        text.append(f"\n\n{format_payment(order.source_payment)}")
        targets = allowed_targets(order.status)
        if targets:
            text.append("\n\n")
            for status, actor in targets.items():
                text.append(f" {_ACTION_KEYS[status]} ", style=badge_style(status))
                text.append(f" {status} ({actor})  ")
        detail.update(text)
