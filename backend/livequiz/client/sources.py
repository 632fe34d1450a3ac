"""Where a PollAggregator reads authoritative poll state from.

``fetch`` may raise; the aggregator treats any exception as "no update this
cycle". ``cast_vote`` never raises and returns a :class:`Result` whose value
is the recorded vote as a dict.
"""

import logging
from typing import Optional

import httpx

from livequiz import db
from livequiz.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    PipelineError,
    Result,
    StateError,
    ValidationError,
)
from livequiz.models import Activation
from livequiz.services.ledger import VoteLedger
from livequiz.services.tallies import PollSnapshot, derive_snapshot

logger = logging.getLogger(__name__)


class LedgerPollSource:
    """Reads straight from the store through the VoteLedger (same process)."""

    def __init__(self, app):
        self.app = app

    def fetch(self, activation_id: int, player_id=None) -> PollSnapshot:
        with self.app.app_context():
            activation = db.session.get(Activation, activation_id)
            if activation is None:
                raise LookupError(f'activation {activation_id} not found')
            responses = VoteLedger().responses_for(activation.id)
            return derive_snapshot(activation.options, responses, activation.poll_state, player_id)

    def cast_vote(self, activation_id: int, player_id, option_id) -> Result:
        with self.app.app_context():
            result = VoteLedger().cast_vote(activation_id, player_id, option_id)
            if not result.ok:
                return result
            return Result.success(result.value.to_dict())


_ERRORS_BY_STATUS = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
}


class HttpPollSource:
    """Reads poll state from the HTTP API with ``httpx``."""

    def __init__(self, base_url: str = '', client: Optional[httpx.Client] = None,
                 timeout: float = 5.0):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.client.close()

    def fetch(self, activation_id: int, player_id=None) -> PollSnapshot:
        params = {'player_id': player_id} if player_id is not None else None
        response = self.client.get(f'/api/activations/{activation_id}/poll', params=params)
        response.raise_for_status()
        return PollSnapshot.from_dict(response.json())

    def cast_vote(self, activation_id: int, player_id, option_id) -> Result:
        try:
            response = self.client.post(
                f'/api/activations/{activation_id}/votes',
                json={'playerId': player_id, 'optionId': option_id},
            )
        except httpx.HTTPError as exc:
            logger.warning('vote request failed activation=%s player=%s: %s', activation_id, player_id, exc)
            return Result.failure(PersistenceError('Vote request failed'))

        if response.is_success:
            return Result.success(response.json().get('vote') or {})
        return Result.failure(self._error_from(response))

    @staticmethod
    def _error_from(response: httpx.Response) -> PipelineError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get('error')
        message = body.get('message') or code or f'HTTP {response.status_code}'
        if code == 'voting_closed':
            return StateError(message)
        error_cls = _ERRORS_BY_STATUS.get(response.status_code, PersistenceError)
        return error_cls(message, code=code)
