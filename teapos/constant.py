"""Editable static catalog and order-rule configuration."""

from __future__ import annotations

TOPPING_CATALOG: dict[str, dict[str, str | int]] = {
    "18": {"name": "Đác rim thốt nốt", "price": 10000, "glyph": "🥥"},
    "19": {"name": "Trân châu trắng", "price": 5000, "glyph": "⚪"},
    "20": {"name": "Trân châu đường đen", "price": 5000, "glyph": "⚫"},
}

SUGAR_LEVELS: dict[str, str] = {
    "no-sugar": "Không đường",
    "less-sugar": "Ít đường",
    "normal-sugar": "Đường bình thường",
    "more-sugar": "Nhiều đường",
}

ICE_LEVELS: dict[str, str] = {
    "no-ice": "Không đá",
    "less-ice": "Ít đá",
    "normal-ice": "Đá bình thường",
    "more-ice": "Nhiều đá",
}

DEFAULT_SUGAR_LEVEL = "normal-sugar"
DEFAULT_ICE_LEVEL = "normal-ice"

CUSTOMER_TYPES: tuple[str, ...] = ("table", "walkin")
PAYMENT_METHODS: dict[str, str] = {
    "cash": "Tiền mặt",
    "transfer": "Chuyển khoản",
}

ORDER_STATUSES: tuple[str, ...] = ("pending", "preparing", "completed", "cancelled")
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled"})
ACTORS: tuple[str, ...] = ("staff", "kitchen")

# (from, to) -> actor allowed to make the move.
STATUS_TRANSITIONS: dict[tuple[str, str], str] = {
    ("pending", "preparing"): "kitchen",
    ("pending", "cancelled"): "staff",
    ("preparing", "completed"): "kitchen",
    ("preparing", "cancelled"): "staff",
}

STATUS_DESCRIPTIONS: dict[str, str] = {
    "pending": "Đơn hàng đã được tạo",
    "preparing": "Nhà bếp đang chuẩn bị",
    "completed": "Đơn hàng đã hoàn thành",
    "cancelled": "Đơn hàng đã bị hủy",
}

STATUS_LABELS: dict[str, dict[str, str]] = {
    "pending": {"text": "Chờ xử lý", "icon": "⏳"},
    "preparing": {"text": "Đang chuẩn bị", "icon": "👨‍🍳"},
    "completed": {"text": "Hoàn thành", "icon": "✅"},
    "cancelled": {"text": "Đã hủy", "icon": "❌"},
}

DEFAULT_PRODUCT_GLYPH = "☕"
UNCATEGORIZED_LABEL = "Khác"
NO_DATA_LABEL = "Chưa có dữ liệu"

ORDER_FILTERS: tuple[str, ...] = ("all", "today", "pending", "preparing", "completed", "incomplete", "cancelled")
DATE_PRESET_DAYS: dict[str, int] = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
}
