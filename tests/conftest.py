"""
Shared pytest fixtures for the tuisen test suite.

This file contains fixtures that are available to all test files.
"""
import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from tuisen import ChatSession, Backoff, Credential, ChatLine, Scrollback, Interaction


class FakeWriter:
    """Stand-in for asyncio.StreamWriter that records written frames."""

    def __init__(self):
        self.frames = []
        self.closed = False
        self.drain_error = None

    def write(self, data):
        self.frames.append(data)

    async def drain(self):
        if self.drain_error is not None:
            raise self.drain_error

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass

    def lines(self):
        return [frame.decode('utf-8').rstrip('\r\n') for frame in self.frames]


class FakeTransport:
    """In-memory transport for ChatSession.

    Must be created inside a running event loop (async test body).
    """

    def __init__(self):
        self.reader = asyncio.StreamReader()
        self.writer = FakeWriter()
        self.connects = []
        self.fail = None

    async def open_connection(self, host, port, ssl=None):
        self.connects.append((host, port, ssl))
        if self.fail is not None:
            raise self.fail
        return self.reader, self.writer

    def feed(self, *lines):
        for line in lines:
            self.reader.feed_data(line.encode('utf-8') + b'\r\n')

    def close(self):
        self.reader.feed_eof()


@pytest.fixture
def make_transport():
    """
    Factory for FakeTransport.

    Returns:
        type: FakeTransport, to be instantiated inside async tests
    """
    return FakeTransport


@pytest.fixture
def credential():
    return Credential('TestUser', 'abc123')


@pytest.fixture
def make_session(credential):
    """
    Factory for ChatSession wired to a FakeTransport.

    Backoff jitter is neutralized (rand=0.5) so delays are exact, and the
    reconnect sleep is an AsyncMock.
    """
    def make(transport, anonymous=False, **kwargs):
        kwargs.setdefault('credential', None if anonymous else credential)
        kwargs.setdefault('backoff', Backoff(rand=lambda: 0.5))
        kwargs.setdefault('sleep', AsyncMock())
        kwargs.setdefault('response_timeout', 1.0)
        return ChatSession(
            'testchannel',
            open_connection=transport.open_connection,
            **kwargs
        )
    return make


def drain(queue):
    """Return every event currently in an asyncio.Queue."""
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


@pytest.fixture
def drain_events():
    return drain


@pytest.fixture
def make_lines():
    """
    Factory for numbered ChatLines.

    Returns:
        function: (count, start=0) -> list of ChatLine
    """
    def make(count, start=0):
        return [
            ChatLine('user%d' % (i % 5), 'message %d' % i, i)
            for i in range(start, start + count)
        ]
    return make


@pytest.fixture
def interaction():
    """Interaction with a 100-line scrollback and a 10-line viewport."""
    return Interaction(Scrollback(100), viewport_height=10)


@pytest.fixture
def sample_config():
    """
    Sample client configuration for testing.

    Returns:
        dict: Configuration with a credential and tuning values
    """
    return {
        'username': 'TestUser',
        'token': 'oauth:abc123',
        'channel': '#TestChannel',
        'scrollback': 500,
        'response_timeout': 5,
        'keepalive_timeout': 120,
        'backoff_initial': 0.5,
        'backoff_max': 30,
        'log_level': 'warning',
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config):
    """
    Create temporary config file for testing.

    Returns:
        Path: Path to temporary config.json file
    """
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(sample_config, indent=2))
    return config_file
