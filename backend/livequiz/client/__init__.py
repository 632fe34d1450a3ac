"""Participant-session side of the pipeline.

A :class:`~livequiz.client.aggregator.PollAggregator` keeps one live poll
snapshot per session, refreshed by a notifier and read from a source.
"""

from livequiz.client.aggregator import PollAggregator
from livequiz.client.notifiers import PollingNotifier, SubscriptionNotifier
from livequiz.client.sources import HttpPollSource, LedgerPollSource

__all__ = [
    'PollAggregator',
    'PollingNotifier',
    'SubscriptionNotifier',
    'HttpPollSource',
    'LedgerPollSource',
]
