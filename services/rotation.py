# services/rotation.py
import logging
import threading

logger = logging.getLogger(__name__)


class RotationScheduler:
    """
    Background thread that calls ``rotate_tokens`` every ``interval``
    seconds inside an app context. The interval is ROTATION_TICK_SECONDS,
    which is also the smallest rotation_seconds a session may use.
    """

    def __init__(self, app, interval):
        if interval <= 0:
            raise ValueError("rotation interval must be positive")
        self.app = app
        self.interval = interval
        self._stop = threading.Event()
        self._thread = None

    def tick(self):
        with self.app.app_context():
            manager = self.app.extensions["attendance"]["manager"]
            return manager.rotate_tokens()

    def _run(self):
        logger.info("Token rotation every %ss", self.interval)
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                # Keep the scheduler alive; the next tick retries
                logger.exception("Rotation tick failed")

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="token-rotation", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
