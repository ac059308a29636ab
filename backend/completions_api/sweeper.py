import threading
from typing import Callable

from .logging_config import get_logger

_LOG = get_logger(__name__)

DEFAULT_SWEEP_INTERVAL_MS = 60_000


class PeriodicSweeper:
    """Runs ``task`` every ``interval_ms`` on a daemon thread until stopped.

    The thread starts on construction. ``stop()`` may be called any number of
    times; after the first call no further sweep begins.
    """

    def __init__(
        self,
        task: Callable[[], object],
        interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        name: str = "sweeper",
    ) -> None:
        self.interval_ms = interval_ms
        self._task = task
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval_ms / 1000):
            try:
                self._task()
            except Exception:
                _LOG.exception("Sweep failed in %s", self._thread.name)

    def stop(self, timeout: float = 5.0) -> None:
        self._stopped.set()
        if self._thread is threading.current_thread():
            return
        self._thread.join(timeout)
