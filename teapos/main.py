"""Entry point for the teapos order board."""

from __future__ import annotations

import logging

from teapos.board import OrderBoardApp
from teapos.context import Session
from teapos.log import configure_logging
from teapos.store import LocalStore

logger = logging.getLogger(__name__)


def build_session() -> Session:
    """Open the local store and wrap it in a fresh session."""
    store = LocalStore()
    store.bootstrap_schema()
    logger.info("store ready db=%s assets=%s", store.db_path, store.asset_dir)
    return Session(store=store)


def main() -> None:
    """Run the Textual order board."""
    configure_logging()
    OrderBoardApp(build_session()).run()


if __name__ == "__main__":
    main()
