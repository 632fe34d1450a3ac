"""Tally derivation shared by the poll endpoint and client aggregators.

Tallies are kept under two keys. The option identity key (``option_id``)
follows the activation's current option ids; the option display key
(``option_text``) survives an activation being recreated with fresh ids and
is the one ``total_votes`` is summed from.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional


@dataclass(frozen=True)
class PollSnapshot:
    tally_by_option: Dict[str, int] = field(default_factory=dict)
    tally_by_option_text: Dict[str, int] = field(default_factory=dict)
    has_voted: bool = False
    selected_option_id: Optional[str] = None
    poll_state: str = 'pending'

    @property
    def total_votes(self) -> int:
        return sum(self.tally_by_option_text.values())

    def to_dict(self):
        return {
            'tallyByOption': dict(self.tally_by_option),
            'tallyByOptionText': dict(self.tally_by_option_text),
            'totalVotes': self.total_votes,
            'hasVoted': self.has_voted,
            'selectedOptionId': self.selected_option_id,
            'pollState': self.poll_state,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'PollSnapshot':
        return cls(
            tally_by_option={str(k): int(v) for k, v in (data.get('tallyByOption') or {}).items()},
            tally_by_option_text={str(k): int(v) for k, v in (data.get('tallyByOptionText') or {}).items()},
            has_voted=bool(data.get('hasVoted')),
            selected_option_id=data.get('selectedOptionId'),
            poll_state=data.get('pollState') or 'pending',
        )

    def with_vote(self, option_id: str, option_text: str) -> 'PollSnapshot':
        """Copy with one extra vote for the given option and the caller marked as voted."""
        by_option = dict(self.tally_by_option)
        by_option[option_id] = by_option.get(option_id, 0) + 1
        by_text = dict(self.tally_by_option_text)
        by_text[option_text] = by_text.get(option_text, 0) + 1
        return replace(
            self,
            tally_by_option=by_option,
            tally_by_option_text=by_text,
            has_voted=True,
            selected_option_id=option_id,
        )


EMPTY_SNAPSHOT = PollSnapshot()


def derive_snapshot(options: Iterable[Mapping], responses: Iterable, poll_state: str,
                    player_id=None) -> PollSnapshot:
    """Count ``responses`` per option id and per option text.

    ``responses`` are objects (or mappings) exposing ``option_id``,
    ``option_text`` and ``player_id``. Every current option starts at 0.
    """
    by_option: Dict[str, int] = {}
    by_text: Dict[str, int] = {}
    for option in options:
        if option.get('id') is not None:
            by_option[str(option['id'])] = 0
        if option.get('text') is not None:
            by_text[option['text']] = 0

    has_voted = False
    selected = None
    for response in responses:
        option_id = _field(response, 'option_id')
        option_text = _field(response, 'option_text')
        if option_id is not None:
            key = str(option_id)
            by_option[key] = by_option.get(key, 0) + 1
        if option_text is not None:
            by_text[option_text] = by_text.get(option_text, 0) + 1
        if player_id is not None and str(_field(response, 'player_id')) == str(player_id):
            has_voted = True
            selected = str(option_id) if option_id is not None else None

    return PollSnapshot(
        tally_by_option=by_option,
        tally_by_option_text=by_text,
        has_voted=has_voted,
        selected_option_id=selected,
        poll_state=poll_state or 'pending',
    )


def _field(obj, name):
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)
