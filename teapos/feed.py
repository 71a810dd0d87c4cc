"""Change-feed consumption: a bounded event channel and an id-keyed live mirror.

The store pushes events from whatever thread performed the write; consumers
drain the channel on their own schedule and fold events into a
``LiveCollection``. Delivery is at-least-once and unordered, so applying an
event must be idempotent.
"""

from __future__ import annotations

import logging
import queue
from typing import Any, Callable, Generic, Iterable, Iterator, Protocol, TypeVar

from teapos.config import FEED_QUEUE_SIZE, FEED_TOMBSTONE_LIMIT
from teapos.errors import RecordValidationError
from teapos.models import Category, Order, Product
from teapos.store import ChangeEvent, Handler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeedSource(Protocol):
    def subscribe(self, kind: str, handler: Handler) -> str: ...

    def unsubscribe(self, handle: str | None) -> None: ...

    def fetch_all(self, kind: str) -> list[dict[str, Any]]: ...


class LiveCollection(Generic[T]):
    """Local mirror of one entity kind, kept current from change events.

    A deleted id is remembered so a late insert or update cannot bring it back.
    When ``freshness`` is given, an update that scores lower than the held copy
    is treated as stale and dropped.
    """

    def __init__(
        self,
        kind: str,
        parse: Callable[[dict[str, Any]], T],
        key: Callable[[T], str],
        freshness: Callable[[T], int] | None = None,
        tombstone_limit: int = FEED_TOMBSTONE_LIMIT,
    ) -> None:
        self.kind = kind
        self.parse = parse
        self.key = key
        self.freshness = freshness
        self.items: dict[str, T] = {}
        self.tombstone_limit = tombstone_limit
        # Oldest tombstone first.
        self._deleted: dict[str, None] = {}

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items.values())

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.items

    def get(self, record_id: str) -> T | None:
        return self.items.get(record_id)

    def values(self) -> list[T]:
        return list(self.items.values())

    def reset(self, records: Iterable[dict[str, Any]]) -> None:
        """Replace the mirror with a full fetch."""
        fresh: dict[str, T] = {}
        for record in records:
            try:
                item = self.parse(record)
            except RecordValidationError as exc:
                logger.warning("skip invalid %s record on reload: %s", self.kind, exc)
                continue
            fresh[self.key(item)] = item
        self.items = fresh
        # Only ids missing from the fetch stay tombstoned.
        self._deleted = {record_id: None for record_id in self._deleted if record_id not in fresh}

    def _tombstone(self, record_id: str) -> None:
        self._deleted.pop(record_id, None)
        self._deleted[record_id] = None
        while len(self._deleted) > self.tombstone_limit:
            del self._deleted[next(iter(self._deleted))]

    def apply(self, event: ChangeEvent) -> bool:
        """Fold one event into the mirror. Returns True when the mirror changed."""
        if event.kind != self.kind:
            return False

        if event.event_type == "delete":
            record_id = event.record_id
            if record_id is None:
                return False
            self._tombstone(record_id)
            return self.items.pop(record_id, None) is not None

        if event.new is None:
            return False
        try:
            item = self.parse(event.new)
        except RecordValidationError as exc:
            logger.warning("skip invalid %s %s event: %s", self.kind, event.event_type, exc)
            return False

        record_id = self.key(item)
        if record_id in self._deleted:
            return False

        current = self.items.get(record_id)
        if current is not None:
            if current == item:
                return False
            if self.freshness is not None and self.freshness(item) < self.freshness(current):
                logger.debug("drop stale %s event id=%s", self.kind, record_id)
                return False
        self.items[record_id] = item
        return True


def order_collection() -> LiveCollection[Order]:
    # Timelines only grow, so a longer one is the later snapshot.
    return LiveCollection(
        "order",
        Order.from_record,
        key=lambda order: order.order_id or "",
        freshness=lambda order: len(order.timeline),
    )


def product_collection() -> LiveCollection[Product]:
    return LiveCollection("product", Product.from_record, key=lambda product: product.product_id)


def category_collection() -> LiveCollection[Category]:
    return LiveCollection("category", Category.from_record, key=lambda category: category.category_id)


class ChangeFeed:
    """Bounded channel between a store subscription and its consumer.

    When the channel is full the event is dropped and ``needs_resync`` is set;
    ``pump`` then reloads the mirror from a full fetch instead of replaying.
    """

    def __init__(self, source: FeedSource, kind: str, maxsize: int = FEED_QUEUE_SIZE) -> None:
        self.source = source
        self.kind = kind
        self.needs_resync = False
        self.handle: str | None = None
        self._queue: queue.Queue[ChangeEvent] = queue.Queue(maxsize=maxsize)

    def __enter__(self) -> ChangeFeed:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        if self.handle is None:
            self.handle = self.source.subscribe(self.kind, self._on_event)

    def close(self) -> None:
        self.source.unsubscribe(self.handle)
        self.handle = None

    def _on_event(self, event: ChangeEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.needs_resync = True
            logger.warning("change feed full kind=%s, dropping %s event", self.kind, event.event_type)

    def drain(self, limit: int | None = None) -> list[ChangeEvent]:
        events: list[ChangeEvent] = []
        while limit is None or len(events) < limit:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return events

    def pump(self, collection: LiveCollection[Any]) -> bool:
        """Apply pending events to ``collection``. Returns True when anything changed."""
        if self.needs_resync:
            self.needs_resync = False
            self.drain()
            collection.reset(self.source.fetch_all(self.kind))
            logger.info("change feed resynced kind=%s items=%d", self.kind, len(collection))
            return True

        changed = False
        for event in self.drain():
            changed = collection.apply(event) or changed
        return changed
