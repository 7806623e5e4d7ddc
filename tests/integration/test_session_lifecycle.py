"""
Integration tests for the ChatSession lifecycle.

Tests a real TCP connection against the local IRC stub:
- Login, join and message delivery
- Sending with local echo
- Reconnect after the server drops the connection
- Terminal authentication failure
"""
import asyncio

import pytest

from tuisen import ChatSession, SessionState, Backoff, Credential
from tuisen.error import ConnectionFailed
from tuisen.events import (
    MessageReceived, ConnectionEstablished, ConnectionLost, AuthenticationFailed
)


pytestmark = pytest.mark.asyncio


def make_session(server, credential=Credential('TestUser', 'abc123'), **kwargs):
    return ChatSession(
        'testchannel',
        credential=credential,
        host='127.0.0.1',
        port=server.port,
        tls=False,
        backoff=Backoff(initial=0.05, maximum=0.2, rand=lambda: 0.5),
        response_timeout=2.0,
        **kwargs
    )


async def next_event(session, timeout=2.0):
    return await asyncio.wait_for(session.events.get(), timeout)


async def wait_for_line(server, line, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while line not in server.received:
        assert loop.time() < deadline, 'server never received %r' % line
        await asyncio.sleep(0.01)


async def stop(task):
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


async def test_join_receive_and_send(irc_server):
    """Session logs in, receives channel messages and sends its own."""
    async with irc_server() as server:
        session = make_session(server)
        task = asyncio.create_task(session.run())
        try:
            assert await next_event(session) == ConnectionEstablished('testchannel', False)
            assert server.received[:3] == [
                'PASS oauth:abc123', 'NICK testuser', 'JOIN #testchannel'
            ]

            await server.broadcast(':alice!alice@alice.tmi.twitch.tv PRIVMSG #testchannel :hey')
            event = await next_event(session)
            assert isinstance(event, MessageReceived)
            assert (event.line.sender, event.line.body) == ('alice', 'hey')

            line = await session.send_chat_message('hello stub')
            assert await next_event(session) == MessageReceived(line)
            assert line.received_at > event.line.received_at
            await wait_for_line(server, 'PRIVMSG #testchannel :hello stub')
        finally:
            await stop(task)
        assert session.state is SessionState.DISCONNECTED


async def test_anonymous_session(irc_server):
    """Anonymous sessions join without waiting for the server."""
    async with irc_server() as server:
        session = make_session(server, credential=None)
        task = asyncio.create_task(session.run())
        try:
            assert await next_event(session) == ConnectionEstablished('testchannel', True)
            await wait_for_line(server, 'PASS SCHMOOPIIE')
        finally:
            await stop(task)


async def test_reconnect_after_drop(irc_server):
    """Session reconnects with backoff when the server closes the connection."""
    async with irc_server() as server:
        session = make_session(server)
        task = asyncio.create_task(session.run())
        try:
            assert isinstance(await next_event(session), ConnectionEstablished)
            server.drop()

            lost = await next_event(session)
            assert isinstance(lost, ConnectionLost)
            assert lost.attempt == 1
            assert lost.retry_in == pytest.approx(0.05)

            assert isinstance(await next_event(session), ConnectionEstablished)
            assert server.connections == 2
            assert session.retry is None
        finally:
            await stop(task)


async def test_authentication_failure(irc_server):
    """Rejected credentials stop the session without retrying."""
    async with irc_server(auth_ok=False) as server:
        session = make_session(server)
        await asyncio.wait_for(session.run(), 2.0)

        assert session.state is SessionState.FAILED
        assert await next_event(session) == AuthenticationFailed('Login authentication failed')
        assert server.connections == 1


async def test_connection_refused(irc_server):
    """Initial connect reports ConnectionFailed when nothing listens."""
    async with irc_server() as server:
        pass
    session = make_session(server)
    with pytest.raises(ConnectionFailed):
        await session.connect()
    assert session.state is SessionState.DISCONNECTED
