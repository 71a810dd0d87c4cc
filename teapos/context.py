"""Per-session application context passed to services and the console."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from teapos import config
from teapos.store import Handler


class Store(Protocol):
    """Collaborator interface every store backend provides."""

    def fetch_all(self, kind: str) -> list[dict[str, Any]]: ...

    def get(self, kind: str, record_id: str) -> dict[str, Any]: ...

    def insert(self, kind: str, record: dict[str, Any]) -> dict[str, Any]: ...

    def update(self, kind: str, record_id: str, partial: dict[str, Any]) -> dict[str, Any]: ...

    def delete(self, kind: str, record_id: str) -> bool: ...

    def subscribe(self, kind: str, handler: Handler) -> str: ...

    def unsubscribe(self, handle: str | None) -> None: ...

    def upload_asset(self, data: Any, path_hint: str) -> str: ...


@dataclass(frozen=True)
class Settings:
    upsize_surcharge: int = config.UPSIZE_SURCHARGE
    walk_in_label: str = config.WALK_IN_LABEL
    timezone: str = config.TIMEZONE
    store_name: str = config.STORE_NAME
    image_bucket: str = config.PRODUCT_IMAGE_BUCKET


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """Everything one client session needs: the store, settings, clock and operator role."""

    store: Store
    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], datetime] = _utc_now
    actor: str = "staff"

    def now(self) -> datetime:
        return self.clock()
