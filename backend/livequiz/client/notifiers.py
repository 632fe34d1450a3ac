"""Notification strategies that tell a PollAggregator when to re-sync.

Both adapters share ``start(callback)`` / ``stop()``; the aggregator does not
know whether it is driven by a timer or by pushed events.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 2.0


class PollingNotifier:
    """Calls ``callback`` every ``interval`` seconds on a single daemon thread."""

    def __init__(self, interval: float = DEFAULT_POLL_INTERVAL_SEC):
        if interval <= 0:
            raise ValueError('interval must be positive')
        self.interval = interval
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, callback: Callable[[], None]) -> None:
        self.stop()
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(callback, stop_event), name='poll-resync', daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, callback: Callable[[], None], stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                callback()
            except Exception:
                logger.exception('poll re-sync callback failed')


class SubscriptionNotifier:
    """Re-syncs whenever the server pushes a ``state_update`` event.

    ``client`` is anything with a python-socketio style
    ``on(event, handler, namespace=...)`` method, usually a
    ``socketio.Client`` already connected and joined to the room.
    """

    def __init__(self, client, event: str = 'state_update', namespace: str = '/ws'):
        self.client = client
        self.event = event
        self.namespace = namespace
        self._callback: Optional[Callable[[], None]] = None
        self._registered = False

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        if not self._registered:
            self.client.on(self.event, self._handle, namespace=self.namespace)
            self._registered = True

    def stop(self) -> None:
        self._callback = None

    def _handle(self, data=None) -> None:
        callback = self._callback
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception('subscription re-sync callback failed')
