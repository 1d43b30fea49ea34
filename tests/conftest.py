"""Pytest configuration and fixtures for WLED dial tests."""

import copy
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.session import DeviceSession

DEVICE_PAYLOAD = {
    'state': {
        'on': True,
        'bri': 128,
        'ps': 2,
        'pl': -1,
        'seg': [{'fx': 1, 'pal': 0, 'sx': 128, 'ix': 128}],
    },
    'info': {'name': 'Kitchen', 'ver': '0.14.0'},
    'effects': ['Solid', 'Blink', 'Breathe'],
    'palettes': ['Default', 'Random Cycle', 'Rainbow'],
}

PRESETS_PAYLOAD = {
    '0': {},
    '1': {'n': 'Morning'},
    '2': {'n': 'Evening'},
    '3': {},
    '5': {'n': 'Party'},
}

RELAY_BLOCK = {'relays': [{'relay': 0, 'state': True}, {'relay': 1, 'state': False}]}


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class FakeTimers:
    """Timer factory recording every timer it creates."""

    def __init__(self):
        self.created: list[FakeTimer] = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.created.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]

    @property
    def last(self) -> FakeTimer:
        return self.created[-1]


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def run_inline(fn, *args):
    return fn(*args)


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def device_payload():
    return copy.deepcopy(DEVICE_PAYLOAD)


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def host():
    host = MagicMock()
    host.get_settings.return_value = {}
    return host


@pytest.fixture
def client(device_payload):
    client = MagicMock()
    client.fetch_device.return_value = device_payload
    client.fetch_presets.return_value = copy.deepcopy(PRESETS_PAYLOAD)
    client.send_state.return_value = True
    return client


@pytest.fixture
def make_session(host, client, timers, clock):
    """Factory for sessions wired to fakes; commands are sent inline."""
    def factory(settings=None, context_id='ctx-1'):
        if settings is None:
            settings = {'ipAddress': '192.168.1.50'}
        return DeviceSession(context_id, host, settings, client=client,
                             timer_factory=timers, clock=clock, dispatch=run_inline)
    return factory


@pytest.fixture
def polled_session(make_session, timers):
    """A configured session after one successful poll."""
    session = make_session()
    session.start()
    timers.last.fire()
    return session
