"""
Pytest configuration and shared fixtures for the Kaali Tilli server.
"""

import os
import random
import sys

import pytest

# Add src to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from kaali_tilli.server.game.manager import RoomManager  # noqa: E402


PLAYER_IDS = ["p1", "p2", "p3", "p4", "p5", "p6", "p7"]


class Outbox:
    """Collects every message RoomManager sends, per player."""

    def __init__(self):
        self.sent = []

    def __call__(self, player_id, msg):
        self.sent.append((player_id, msg))

    def to(self, player_id, msg_type=None):
        return [m for pid, m in self.sent if pid == player_id and (msg_type is None or m.type == msg_type)]

    def last(self, player_id, msg_type):
        msgs = self.to(player_id, msg_type)
        return msgs[-1] if msgs else None

    def clear(self):
        self.sent.clear()


class ManualScheduler:
    """Captures deferred tasks so tests decide when they run."""

    def __init__(self):
        self.pending = []

    def __call__(self, delay, fn):
        self.pending.append((delay, fn))

    def run_all(self):
        tasks, self.pending = self.pending, []
        for _, fn in tasks:
            fn()


@pytest.fixture
def player_ids():
    return PLAYER_IDS


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def manager(outbox, scheduler):
    return RoomManager(outbox, resolve_delay=0.5, scheduler=scheduler, rng=random.Random(1234))
