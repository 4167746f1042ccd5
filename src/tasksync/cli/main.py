# src/tasksync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores the stored session (going live
if it is still valid), then runs the console REPL until /exit or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_models import SessionState

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    try:
        session_state = await state.board.start()
        identity = state.board.identity
        if session_state == SessionState.AUTHENTICATED and identity is not None:
            logger.info("Signed in as %s (%s).", identity.display_name, identity.role.value)
        else:
            logger.info("Not signed in. Use /login <email> <password>.")

        await run_console_loop(state)
    finally:
        await state.aclose()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (api=%s)...", settings.app_name, settings.api_base_url)

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
