"""
Debounced background recomputation.

A completion signal schedules one profile recompilation per subject per
debounce window. Work runs on a thread pool; failures are retried with a
linear backoff and logged, and never reach the signalling caller.
"""

import logging
import threading
import time

from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any

from ultradian.config import TriggerSettings
from ultradian.constants import TriggerConstants as TC

logger = logging.getLogger(__name__)

__all__ = ["RecomputeTrigger"]


class RecomputeTrigger:
    """
    Collapses bursts of completion signals into single recomputations.

    Example:
        >>> trigger = RecomputeTrigger(recompute_profile)
        >>> trigger.signal_completion("alice")  # scheduled
        True
        >>> trigger.signal_completion("alice")  # within the window
        False
    """

    def __init__(
        self,
        recompute: Callable[[str], Any],
        settings: TriggerSettings | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the trigger.

        Args:
            recompute: Compiles one subject's profile (runs on a worker)
            settings: Debounce window and retry policy
            executor: Where jobs run (defaults to a small thread pool)
            clock: Monotonic seconds, used for debounce windows
            sleep: Used between retry attempts
        """
        self.recompute = recompute
        self.settings = settings or TriggerSettings()
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=TC.MAX_WORKERS, thread_name_prefix="rhythm-recompute"
        )
        self.clock = clock
        self.sleep = sleep

        self._lock = threading.RLock()
        self._locked_until: dict[str, float] = {}

    def should_debounce(self, subject_id: str) -> bool:
        """True while the subject's debounce window is open."""
        with self._lock:
            expires = self._locked_until.get(subject_id)
            return expires is not None and self.clock() < expires

    def _prune_expired(self, now: float) -> None:
        """Forget subjects whose window has closed. Caller holds the lock."""
        expired = [s for s, expires in self._locked_until.items() if expires <= now]
        for subject_id in expired:
            del self._locked_until[subject_id]

    def signal_completion(self, subject_id: str) -> bool:
        """
        Note that the subject completed a unit of work.

        Returns:
            True if a recomputation was scheduled, False if debounced
        """
        with self._lock:
            if self.should_debounce(subject_id):
                logger.debug(f"Recompute for {subject_id} debounced")
                return False
            now = self.clock()
            self._prune_expired(now)
            self._locked_until[subject_id] = now + self.settings.debounce_seconds

        try:
            self.executor.submit(self._run, subject_id)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Could not schedule recompute for {subject_id}: {e}")
            return False

        logger.debug(f"Recompute for {subject_id} scheduled")
        return True

    def _run(self, subject_id: str) -> Any:
        """Run one recomputation with retries. Never raises."""
        attempts = self.settings.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                outcome = self.recompute(subject_id)
            except Exception as e:
                if attempt < attempts:
                    delay = self.settings.backoff_seconds * attempt
                    logger.warning(
                        f"Recompute for {subject_id} failed "
                        f"(attempt {attempt}/{attempts}): {e}; retrying in {delay:.1f}s"
                    )
                    self.sleep(delay)
                    continue
                logger.error(
                    f"Recompute for {subject_id} failed after {attempts} attempts: {e}",
                    exc_info=True,
                )
                return None
            return outcome

        return None

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; drain the pool if this trigger created it."""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
