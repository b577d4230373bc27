# app/workers/scheduler.py
import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ReviewScheduler:
    """
    Runs ``cycle`` every ``interval_seconds`` on a background thread.

    Cycles never overlap: ``_cycle_lock`` is held while a cycle runs and a
    firing that finds it taken is skipped. ``stop()`` waits for the running
    cycle instead of interrupting it.
    """

    def __init__(self, cycle: Callable[[], Any], *, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cycle = cycle
        self.interval_seconds = interval_seconds
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            if self._thread.is_alive():
                raise RuntimeError("scheduler already started")
            self._thread = None

        logger.info("Starting scheduler")
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="review-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(f"Scheduler started successfully (interval={self.interval_seconds}s)")

    def stop(self, timeout: float | None = None) -> bool:
        """
        Stop firing and wait for an in-flight cycle. ``timeout`` bounds the
        whole wait; returns False if it expired before the cycle finished.
        """
        logger.info("Stopping scheduler")
        deadline = None if timeout is None else time.monotonic() + timeout
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            # a loop thread still stuck in a cycle stays tracked, so start() refuses
            if not self._thread.is_alive():
                self._thread = None

        if deadline is None:
            finished = self._cycle_lock.acquire()
        else:
            finished = self._cycle_lock.acquire(
                timeout=max(0.0, deadline - time.monotonic())
            )
        if finished:
            self._cycle_lock.release()
            logger.info("Scheduler stopped")
        else:
            logger.warning("Scheduler stop timed out while a review cycle was running")
        return finished

    def run_once(self) -> Any:
        """Run one cycle now unless one is already running or we are stopped."""
        if self._stop_event.is_set():
            return None
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous review cycle still running, skipping this run")
            return None
        try:
            logger.info("Running scheduled code review cycle")
            return self._cycle()
        except Exception as e:
            logger.error(f"Failed to process pending submissions: {e}", exc_info=True)
            return None
        finally:
            self._cycle_lock.release()

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
