"""
Shared fixtures for integration tests.

Integration tests run a real ChatSession over TCP against a small local
IRC server that speaks just enough of the Twitch dialect.
"""
import asyncio
import contextlib

import pytest


class IrcStub:
    """Local IRC server.

    Attributes:
        received (list): Lines sent by clients, in order
        auth_ok (bool): Acknowledge JOIN (True) or reject the login (False)
        port (int): Listening port, assigned on start
    """

    def __init__(self, channel='testchannel', auth_ok=True):
        self.channel = channel
        self.auth_ok = auth_ok
        self.received = []
        self.clients = []
        self.connections = 0
        self.server = None
        self.port = None
        self.joined = asyncio.Event()

    async def start(self):
        self.server = await asyncio.start_server(self.handle, '127.0.0.1', 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def stop(self):
        self.drop()
        self.server.close()
        await self.server.wait_closed()

    async def handle(self, reader, writer):
        self.connections += 1
        self.clients.append(writer)
        nick = None
        try:
            while True:
                raw = await reader.readline()
                if not raw:
                    break
                line = raw.decode('utf-8').rstrip('\r\n')
                self.received.append(line)
                if line.startswith('NICK '):
                    nick = line[5:]
                elif line.startswith('JOIN ') and self.auth_ok:
                    writer.write((':%s!%s@%s.tmi.twitch.tv JOIN #%s\r\n'
                                  % (nick, nick, nick, self.channel)).encode())
                    await writer.drain()
                    self.joined.set()
                elif line.startswith('JOIN '):
                    writer.write(b':tmi.twitch.tv NOTICE * :Login authentication failed\r\n')
                    await writer.drain()
        except ConnectionError:
            pass
        finally:
            if writer in self.clients:
                self.clients.remove(writer)
            writer.close()

    async def broadcast(self, line):
        for writer in list(self.clients):
            writer.write(line.encode('utf-8') + b'\r\n')
            await writer.drain()

    def drop(self):
        """Close every client connection."""
        self.joined.clear()
        for writer in list(self.clients):
            writer.close()
        self.clients.clear()


@pytest.fixture
def irc_server():
    """
    Factory for a running IrcStub.

    Usage:
        async with irc_server() as server: ...
    """
    @contextlib.asynccontextmanager
    async def run(**kwargs):
        server = IrcStub(**kwargs)
        await server.start()
        try:
            yield server
        finally:
            await server.stop()
    return run
