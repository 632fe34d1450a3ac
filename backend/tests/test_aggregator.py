import pytest

from livequiz.client.aggregator import PollAggregator
from livequiz.client.sources import LedgerPollSource
from livequiz.errors import ConflictError, Result, StateError
from livequiz.services.tallies import PollSnapshot, derive_snapshot


class ManualNotifier:
    """Notifier the test drives by hand."""

    def __init__(self):
        self.callback = None
        self.starts = 0
        self.stops = 0

    def start(self, callback):
        self.callback = callback
        self.starts += 1

    def stop(self):
        self.callback = None
        self.stops += 1

    def tick(self):
        if self.callback:
            self.callback()


class FakeSource:
    def __init__(self, options):
        self.options = options
        self.votes = {}  # (activation_id, player_id) -> option_id
        self.state = {}
        self.fail_reads = False
        self.accept_without_recording = False

    def fetch(self, activation_id, player_id=None):
        if self.fail_reads:
            raise ConnectionError('store unreachable')
        responses = [
            {'player_id': pid, 'option_id': oid, 'option_text': self._text(oid)}
            for (aid, pid), oid in self.votes.items() if aid == activation_id
        ]
        return derive_snapshot(self.options, responses, self.state.get(activation_id, 'voting'), player_id)

    def cast_vote(self, activation_id, player_id, option_id):
        if self.state.get(activation_id, 'voting') != 'voting':
            return Result.failure(StateError('closed'))
        key = (activation_id, player_id)
        if key in self.votes:
            return Result.failure(ConflictError())
        if not self.accept_without_recording:
            self.votes[key] = option_id
        return Result.success({'option_id': option_id, 'option_text': self._text(option_id)})

    def _text(self, option_id):
        return next(o['text'] for o in self.options if o['id'] == option_id)


OPTIONS = [{'id': 'a', 'text': 'Apples'}, {'id': 'b', 'text': 'Bananas'}]


@pytest.fixture()
def source():
    return FakeSource(OPTIONS)


@pytest.fixture()
def notifier():
    return ManualNotifier()


def test_starts_empty_and_pending_without_activation(source, notifier):
    agg = PollAggregator(source, player_id=1, notifier=notifier)
    snap = agg.snapshot
    assert snap == PollSnapshot()
    assert snap.poll_state == 'pending'
    assert snap.total_votes == 0
    assert notifier.starts == 0


def test_set_activation_syncs_and_starts_notifier(source, notifier):
    source.votes[(10, 2)] = 'b'
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    snap = agg.snapshot
    assert snap.tally_by_option == {'a': 0, 'b': 1}
    assert snap.tally_by_option_text == {'Apples': 0, 'Bananas': 1}
    assert snap.poll_state == 'voting'
    assert snap.has_voted is False
    assert notifier.starts == 1


def test_vote_applies_optimistic_overlay(source, notifier):
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    assert agg.submit_vote('a').ok

    snap = agg.snapshot
    assert snap.has_voted is True
    assert snap.selected_option_id == 'a'
    assert snap.tally_by_option['a'] == 1
    assert snap.total_votes == sum(snap.tally_by_option_text.values()) == 1


def test_authoritative_refresh_replaces_overlay(source, notifier):
    # Server acknowledges but the vote never lands; the next tick must undo it
    source.accept_without_recording = True
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    assert agg.submit_vote('b').ok
    assert agg.snapshot.tally_by_option['b'] == 1

    notifier.tick()
    snap = agg.snapshot
    assert snap.tally_by_option == {'a': 0, 'b': 0}
    assert snap.has_voted is False
    assert snap.total_votes == 0


def test_no_double_count_after_refresh(source, notifier):
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    agg.submit_vote('a')
    source.votes[(10, 7)] = 'a'
    notifier.tick()
    assert agg.snapshot.tally_by_option == {'a': 2, 'b': 0}
    assert agg.snapshot.total_votes == 2


def test_rejected_vote_leaves_snapshot(source, notifier):
    source.votes[(10, 1)] = 'b'
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    before = agg.snapshot

    result = agg.submit_vote('a')
    assert isinstance(result.error, ConflictError)
    assert agg.snapshot == before

    source.state[10] = 'closed'
    notifier.tick()
    assert agg.snapshot.poll_state == 'closed'
    assert isinstance(agg.submit_vote('a').error, StateError)


def test_read_failure_keeps_last_snapshot(source, notifier, caplog):
    source.votes[(10, 2)] = 'a'
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    before = agg.snapshot

    source.fail_reads = True
    source.votes[(10, 3)] = 'b'
    assert agg.sync() is False
    assert agg.snapshot == before
    assert 'keeping last snapshot' in caplog.text

    source.fail_reads = False
    assert agg.sync() is True
    assert agg.snapshot.total_votes == 2


def test_activation_change_resets_state(source, notifier):
    source.votes[(10, 2)] = 'a'
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    agg.submit_vote('b')

    agg.set_activation(11)
    snap = agg.snapshot
    assert snap.has_voted is False
    assert snap.tally_by_option == {'a': 0, 'b': 0}
    assert notifier.stops >= 1

    agg.set_activation(None)
    assert agg.snapshot == PollSnapshot()
    assert notifier.callback is None


def test_stale_sync_result_is_discarded(source, notifier):
    agg = PollAggregator(source, player_id=1, notifier=notifier, activation_id=10)
    source.votes[(10, 5)] = 'a'
    original_fetch = source.fetch

    def fetch_then_switch(activation_id, player_id=None):
        snap = original_fetch(activation_id, player_id)
        # Activation switches while this read is in flight
        source.fetch = original_fetch
        agg.set_activation(None)
        return snap

    source.fetch = fetch_then_switch
    assert agg.sync() is False
    assert agg.snapshot == PollSnapshot()


def test_listeners_receive_snapshots(source, notifier):
    seen = []
    agg = PollAggregator(source, player_id=1, notifier=notifier)
    agg.add_listener(seen.append)
    agg.set_activation(10)
    agg.submit_vote('a')
    assert seen[-1].has_voted is True
    assert all(s.total_votes == sum(s.tally_by_option_text.values()) for s in seen)


def test_context_manager_stops_notifier(source, notifier):
    with PollAggregator(source, player_id=1, notifier=notifier, activation_id=10):
        assert notifier.callback is not None
    assert notifier.callback is None


def test_text_key_survives_option_id_churn():
    # Votes recorded under old ids still count toward totals by display text
    options = [{'id': 'new-1', 'text': 'Yes'}, {'id': 'new-2', 'text': 'No'}]
    responses = [
        {'player_id': 1, 'option_id': 'old-1', 'option_text': 'Yes'},
        {'player_id': 2, 'option_id': 'new-1', 'option_text': 'Yes'},
    ]
    snap = derive_snapshot(options, responses, 'voting', player_id=1)
    assert snap.tally_by_option_text == {'Yes': 2, 'No': 0}
    assert snap.total_votes == 2
    assert snap.tally_by_option['new-1'] == 1
    assert snap.selected_option_id == 'old-1'


def test_ledger_source_round_trip(flask_app, client, poll, make_player):
    alice = make_player('Alice')
    bob = make_player('Bob')
    notifier = ManualNotifier()
    agg = PollAggregator(LedgerPollSource(flask_app), player_id=alice['id'], notifier=notifier,
                         activation_id=poll['id'])

    assert agg.submit_vote('p2').ok
    duplicate = agg.submit_vote('p1')
    assert isinstance(duplicate.error, ConflictError)

    client.post(f"/api/activations/{poll['id']}/votes", json={'playerId': bob['id'], 'optionId': 'p2'})
    notifier.tick()
    snap = agg.snapshot
    assert snap.tally_by_option_text == {'Popcorn': 0, 'Pretzels': 2}
    assert snap.selected_option_id == 'p2'
    assert snap.has_voted is True

    agg.set_activation(987654)
    assert agg.snapshot == PollSnapshot()
