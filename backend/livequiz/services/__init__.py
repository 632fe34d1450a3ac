"""Activation response pipeline: validation, scoring, ledger and timers.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from answer checking, point awards and vote bookkeeping.
"""
