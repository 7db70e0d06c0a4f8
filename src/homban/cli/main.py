# src/homban/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the board scheduler until
SIGINT/SIGTERM. A scheduler crash ends the process with a non-zero status so
a supervisor can restart it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.scheduler.stop()
    except Exception:
        logger.exception("Failed to stop the board scheduler.")

    try:
        await state.board_store.wait_for_observers()
        await state.board_store.aclose()
    except Exception:
        logger.debug("Board store close failed.", exc_info=True)


async def run(state: AppState) -> int:
    loop = asyncio.get_running_loop()
    stop_main = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms don't support add_signal_handler (Windows).
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, _handle_signal, sig)

    # Load (and integrity-check) the board before going to the background.
    board = await state.board_store.read_board()
    logger.info(
        "Board ready: %d tasks (ready=%d in-progress=%d done=%d inactive=%d)",
        len(board.tasks),
        len(board.ready),
        len(board.in_progress),
        len(board.done),
        len(board.inactive),
    )

    runner = state.scheduler.start()
    stopper = asyncio.ensure_future(stop_main.wait())
    try:
        await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()

    if runner.done() and not runner.cancelled() and runner.exception() is not None:
        # Already logged as critical by the scheduler.
        await _shutdown(state)
        return 1

    await _shutdown(state)
    return 0


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    try:
        code = asyncio.run(run(state))
    except KeyboardInterrupt:
        code = 0
    logger.info("Bye.")
    sys.exit(code)


if __name__ == "__main__":
    main()
