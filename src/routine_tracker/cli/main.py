# src/routine_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    # Stores use short-lived sqlite connections per call; close() is a no-op hook.
    for name in ("routine_store", "task_store"):
        store = getattr(state, name, None)
        if store is None or not hasattr(store, "close"):
            continue
        try:
            store.close()
        except Exception:
            logger.debug("%s close failed.", name, exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/routines")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "routines"))

    state = create_initial_state(settings=settings)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
