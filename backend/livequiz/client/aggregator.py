import logging
import threading
from typing import Callable, List, Optional, Tuple

from livequiz.client.notifiers import PollingNotifier
from livequiz.errors import Result, ValidationError
from livequiz.services.tallies import EMPTY_SNAPSHOT, PollSnapshot

logger = logging.getLogger(__name__)


class PollAggregator:
    """Live poll snapshot for one participant session.

    State has two layers: the authoritative snapshot last read from the
    source, and a provisional overlay holding the caller's own accepted vote.
    Every successful ``sync`` replaces the authoritative layer wholesale and
    drops the overlay; nothing is merged.
    """

    def __init__(self, source, player_id=None, notifier=None, activation_id=None):
        self.source = source
        self.player_id = player_id
        self.notifier = notifier or PollingNotifier()
        self._lock = threading.Lock()
        self._activation_id = None
        self._generation = 0
        self._authoritative: PollSnapshot = EMPTY_SNAPSHOT
        self._overlay: Optional[Tuple[str, str]] = None
        self._listeners: List[Callable[[PollSnapshot], None]] = []
        if activation_id is not None:
            self.set_activation(activation_id)

    @property
    def activation_id(self):
        return self._activation_id

    @property
    def snapshot(self) -> PollSnapshot:
        with self._lock:
            return self._compose()

    def _compose(self) -> PollSnapshot:
        if self._overlay is None or self._authoritative.has_voted:
            return self._authoritative
        option_id, option_text = self._overlay
        return self._authoritative.with_vote(option_id, option_text)

    def add_listener(self, listener: Callable[[PollSnapshot], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, snapshot: PollSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception('poll snapshot listener failed')

    def set_activation(self, activation_id) -> None:
        """Switch to another activation (or to none), discarding all state."""
        self.notifier.stop()
        with self._lock:
            self._generation += 1
            self._activation_id = activation_id
            self._authoritative = EMPTY_SNAPSHOT
            self._overlay = None
        logger.info('poll activation changed to %s, state reset', activation_id)
        self._notify(EMPTY_SNAPSHOT)
        if activation_id is None:
            return
        self.sync()
        self.notifier.start(self.sync)

    def sync(self) -> bool:
        """Re-read authoritative state; returns True when the snapshot was replaced."""
        with self._lock:
            activation_id = self._activation_id
            generation = self._generation
        if activation_id is None:
            return False
        try:
            fresh = self.source.fetch(activation_id, self.player_id)
        except Exception:
            logger.warning('poll re-sync failed for activation %s; keeping last snapshot',
                           activation_id, exc_info=True)
            return False
        with self._lock:
            if generation != self._generation:
                # Activation changed while the read was in flight
                return False
            self._authoritative = fresh
            self._overlay = None
            composed = self._compose()
        self._notify(composed)
        return True

    def submit_vote(self, option_id) -> Result:
        with self._lock:
            activation_id = self._activation_id
            generation = self._generation
        if activation_id is None or self.player_id is None:
            return Result.failure(ValidationError('No active poll for this session', code='missing_fields'))

        result = self.source.cast_vote(activation_id, self.player_id, option_id)
        if not result.ok:
            logger.info('vote rejected activation=%s player=%s: %s',
                        activation_id, self.player_id, result.error.code)
            return result

        vote = result.value or {}
        with self._lock:
            if generation != self._generation:
                return result
            self._overlay = (str(vote.get('option_id') or option_id), vote.get('option_text') or '')
            composed = self._compose()
        self._notify(composed)
        return result

    def close(self) -> None:
        self.notifier.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
