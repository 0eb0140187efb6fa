import threading

from diceautobet.orchestrator.errors import SessionCancelled


class SessionControl:
    """
    Pause / cancel signals shared between the session controller and the
    worker thread. The worker polls checkpoint() at every suspension point.
    """

    def __init__(self):
        self._running = threading.Event()
        self._running.set()
        self._cancel = threading.Event()
        self.lock = threading.RLock()    # held while pause / resume and the final status are written
        self._finished = False
        self.generation = 0     # bumped on every resume

    @property
    def paused(self) -> bool:
        return not self._running.is_set() and not self._cancel.is_set()

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def pause(self) -> bool:
        with self.lock:
            if self._finished or self.cancelled or not self._running.is_set():
                return False
            self._running.clear()
            return True

    def resume(self) -> bool:
        with self.lock:
            if self._finished or self._running.is_set():
                return False
            self.generation += 1
            self._running.set()
            return True

    def finish(self):
        """Marks the session over; later pause / resume calls are refused."""
        with self.lock:
            self._finished = True
            self._running.set()

    def cancel(self):
        self._cancel.set()
        self._running.set()

    def checkpoint(self) -> bool:
        """Blocks while paused, raises SessionCancelled once stopped. True if it had to wait."""
        if self._cancel.is_set():
            raise SessionCancelled()
        waited = not self._running.is_set()
        if waited:
            self._running.wait()
        if self._cancel.is_set():
            raise SessionCancelled()
        return waited

    def sleep(self, seconds: float) -> bool:
        self.checkpoint()
        if seconds > 0 and self._cancel.wait(seconds):
            raise SessionCancelled()
        return self.checkpoint()
