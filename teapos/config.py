"""Runtime configuration defaults for the store, logging and order rules."""

from __future__ import annotations

import os

DB_PATH = os.environ.get("TEAPOS_DB_PATH", "data/teapos.db")
ASSET_DIR = os.environ.get("TEAPOS_ASSET_DIR", "data/assets")
PRODUCT_IMAGE_BUCKET = "product-images"

LOG_PATH = os.environ.get("TEAPOS_LOG_PATH", "data/logs")
LOG_LEVEL = os.environ.get("TEAPOS_LOG_LEVEL", "INFO")

STORE_NAME = "Tiệm Trà Bốn Mùa"
CURRENCY_SUFFIX = "đ"
TIMEZONE = "Asia/Ho_Chi_Minh"

# Minor currency units added per upsized cup.
UPSIZE_SURCHARGE = 10_000
WALK_IN_LABEL = "Vãng lai"

FEED_QUEUE_SIZE = 256
FEED_POLL_SECONDS = 0.5
# Deleted ids a live mirror remembers; the oldest are forgotten first.
FEED_TOMBSTONE_LIMIT = 1024
