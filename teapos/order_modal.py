"""Order detail modal screen."""

from __future__ import annotations

from datetime import tzinfo

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static

from teapos.models import Order
from teapos.rendering import format_order_items, format_order_label, format_payment, format_timeline


class OrderDetailModal(ModalScreen[None]):
    """Centered modal showing one order's items, payment and status timeline."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
    ]

    CSS = """
    OrderDetailModal {
        align: center middle;
        background: $background 60%;
    }

    #order-dialog {
        width: 72;
        height: auto;
        max-height: 90%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #order-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #order-body {
        color: white;
    }

    #order-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    def __init__(self, order: Order, tz: tzinfo | None = None) -> None:
        super().__init__()
        self.order = order
        self.tz = tz

    def compose(self) -> ComposeResult:
        with Container(id="order-dialog"):
            yield Static("Order", id="order-title")
            with VerticalScroll():
                yield Static(id="order-body")
            yield Static("Esc / q / Ctrl+C to close", id="order-help")

    def on_mount(self) -> None:
        self.query_one("#order-body", Static).update(self._content())

    def _content(self) -> Text:
        content = Text(style="white")
        content.append_text(format_order_label(self.order))
        content.append("\n\n")
        content.append_text(format_order_items(self.order))
        content.append("\n\n")
        content.append(f"Payment: {format_payment(self.order.source_payment)}")
        content.append("\n\nTimeline\n", style="bold")
        content.append_text(format_timeline(self.order, self.tz))
        return content

    def action_close(self) -> None:
        self.dismiss()
