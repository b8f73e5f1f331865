"""
Pytest configuration for WoL-TUI tests.

Provides in-memory stand-ins for the machine file, the packet sender and the
clock so sessions can be driven without touching disk, network or time.
"""
import logging
import sys
from pathlib import Path

import pytest

# Ensure wol_tui is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from wol_tui import DispatchError, Machine, MachineList, PersistenceError, Session


class FakeStore:
    """Records every saved list; can be told to fail."""

    def __init__(self):
        self.saved = []
        self.fail = False

    def save(self, machines):
        if self.fail:
            raise PersistenceError("disk full")
        self.saved.append(list(machines))


class FakeSender:
    """Records every MAC it is asked to wake; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, mac):
        if self.fail:
            raise DispatchError("network unreachable")
        self.sent.append(mac)
        return 1


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_logger():
    """Undo setup_logging() so later tests see a plain logger."""
    yield
    logger = logging.getLogger("wol_tui")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def machines(store):
    return MachineList(
        [
            Machine("desk", "AA:BB:CC:DD:EE:01"),
            Machine("nas", "AA:BB:CC:DD:EE:02"),
            Machine("laptop", "aa-bb-cc-dd-ee-03"),
        ],
        store,
    )


@pytest.fixture
def make_session(store, sender, clock):
    """Build a session over the given machines, wired to the fakes."""
    def _make(items=()):
        return Session(MachineList(items, store), sender, clock=clock)
    return _make

