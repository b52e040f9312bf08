"""
Pytest configuration and shared fixtures for the card table.
"""

import json
import os
import random
import sys

import pytest

# Add src to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from cardtable.server.game import GameRoom  # noqa: E402
from cardtable.server.network import ConnectionRegistry, Dispatcher  # noqa: E402


class FakeSession:
    """Stands in for ClientSession: records every outbound line."""

    def __init__(self, session_id):
        self.id = session_id
        self.sent = []
        self.closed = False

    def send_text(self, text):
        self.sent.append(json.loads(text))

    def close(self):
        self.closed = True

    def updates(self):
        return [m["data"] for m in self.sent if isinstance(m, dict) and m.get("type") == "update"]

    def last_update(self):
        updates = self.updates()
        return updates[-1] if updates else None


@pytest.fixture
def rng():
    """Seeded random source so deals are reproducible."""
    return random.Random(1234)


@pytest.fixture
def room(rng):
    """A fresh, empty room."""
    return GameRoom(rng=rng)


@pytest.fixture
def seated_room(room):
    """A room with four seated players p1..p4."""
    for i in range(1, 5):
        room.join(f"p{i}", f"Player {i}")
    return room


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def dispatcher(rng):
    """A dispatcher over a fresh room and registry."""
    return Dispatcher(GameRoom(rng=rng), ConnectionRegistry(capacity=8))
