"""Fixed-rate driver re-invoking FilteringFlow.run()."""

import logging
import threading
import time
from typing import Optional

logger = logging.getLogger(__name__)


def run_loop(
    flow,
    rate_hz: float = 100.0,
    stop_event: Optional[threading.Event] = None,
    max_ticks: Optional[int] = None,
) -> int:
    """
    Call flow.run() once per tick until stopped.

    A stop request is honored only between ticks; a tick in progress always
    runs to buffer exhaustion.

    Args:
        flow: Object with a run() method (e.g. FilteringFlow).
        rate_hz: Tick rate (Hz).
        stop_event: Event set by another thread to stop the loop.
        max_ticks: Stop after this many ticks (None runs until stop_event).

    Returns:
        Number of ticks executed.
    """
    if rate_hz <= 0:
        raise ValueError(f"rate_hz must be positive, got {rate_hz}")
    if stop_event is None and max_ticks is None:
        raise ValueError("run_loop needs a stop_event or max_ticks to terminate")
    if stop_event is None:
        stop_event = threading.Event()

    period = 1.0 / rate_hz
    ticks = 0
    while not stop_event.is_set():
        if max_ticks is not None and ticks >= max_ticks:
            break

        start = time.monotonic()
        flow.run()
        ticks += 1

        remaining = period - (time.monotonic() - start)
        if remaining > 0:
            stop_event.wait(remaining)

    logger.debug("Loop stopped after %d ticks", ticks)
    return ticks
