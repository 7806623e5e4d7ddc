#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import enum
import time
import random
import asyncio
import logging
import itertools
import collections

from . import irc
from .error import (
    DecodeError, AuthenticationFailure,
    Anonymous, NotConnected,
    TransportError, ConnectionFailed, ConnectionClosed, PingTimeout
)
from .events import (
    ChatLine,
    MessageReceived, ConnectionEstablished, ConnectionLost,
    KeepAliveReceived, AuthenticationFailed
)


class SessionState(enum.Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    AUTHENTICATING = 'authenticating'
    JOINED = 'joined'
    FAILED = 'failed'


RetryState = collections.namedtuple('RetryState', ['attempt', 'next_retry_at'])


class Backoff:
    """Exponential reconnect delay with jitter.

    Attributes
    ----------
    initial : `float`
        First delay in seconds.
    maximum : `float`
        Upper bound for the delay before jitter.
    factor : `float`
        Multiplier applied per failed attempt.
    jitter : `float`
        Fraction of the delay added or removed at random.
    attempt : `int`
        Number of delays handed out since the last reset.
    """

    def __init__(self, initial=1.0, maximum=60.0, factor=2.0, jitter=0.1,
                 rand=random.random):
        if initial <= 0:
            raise ValueError('initial delay must be positive')
        self.initial = initial
        self.maximum = max(initial, maximum)
        self.factor = factor
        self.jitter = min(max(jitter, 0.0), 0.5)
        self.rand = rand
        self.attempt = 0

    def next_delay(self):
        """Return the delay for the next attempt and advance."""
        # cap the exponent; retries are unbounded
        base = self.initial * self.factor ** min(self.attempt, 32)
        base = min(base, self.maximum)
        self.attempt += 1
        return base + base * self.jitter * (2 * self.rand() - 1)

    def reset(self):
        self.attempt = 0


class ChatSession:
    """Connection to one Twitch IRC channel.

    Attributes
    ----------
    channel : `str`
        Normalized channel name.
    credential : `None` or `tuisen.events.Credential`
        `None` - anonymous, receive-only session.
    host : `str`
    port : `int`
    tls : `bool`
    events : `asyncio.Queue`
        Ordered stream of session events.
    state : `SessionState`
    retry : `None` or `RetryState`
        Pending reconnect, set while `DISCONNECTED` after a failure.
    backoff : `Backoff`
    response_timeout : `float`
        Seconds to wait for the transport to open and for the join
        acknowledgement.
    keepalive_timeout : `float`
        Seconds of silence before probing the server with `PING`.
    fallback_anonymous : `bool`
        Reconnect anonymously when the server rejects the credential.
    """
    logger = logging.getLogger(__name__)

    DEFAULT_HOST = 'irc.chat.twitch.tv'
    TLS_PORT = 6697
    PLAIN_PORT = 6667

    ANONYMOUS_NICK = 'justinfan%d'
    ANONYMOUS_PASS = 'SCHMOOPIIE'

    END_OF_NAMES = 366

    def __init__(self, channel, credential=None,
                 host=DEFAULT_HOST,
                 port=None,
                 tls=True,
                 events=None,
                 open_connection=asyncio.open_connection,
                 backoff=None,
                 response_timeout=10.0,
                 keepalive_timeout=300.0,
                 fallback_anonymous=False,
                 sleep=asyncio.sleep,
                 clock=time.monotonic):
        """
        Parameters
        ----------
        channel : `str`
            Normalized channel name.
        credential : `None` or `tuisen.events.Credential`, optional
        host : `str`, optional
        port : `None` or `int`, optional
            `None` - 6697 with TLS, 6667 without.
        tls : `bool`, optional
        events : `None` or `asyncio.Queue`, optional
            Queue to emit events into.
        open_connection : `function` (host, port, ssl), optional
            Stream connect coroutine.
        backoff : `None` or `Backoff`, optional
        response_timeout : `float`, optional
        keepalive_timeout : `float`, optional
        fallback_anonymous : `bool`, optional
        sleep : `function` (delay), optional
            Sleep coroutine used for reconnect delays.
        clock : `function`, optional
            Monotonic clock.
        """
        self.channel = channel
        self.credential = credential
        self.host = host
        self.tls = tls
        if port is None:
            port = self.TLS_PORT if tls else self.PLAIN_PORT
        self.port = port
        self.events = events if events is not None else asyncio.Queue()
        self.open_connection = open_connection
        self.backoff = backoff or Backoff()
        self.response_timeout = response_timeout
        self.keepalive_timeout = keepalive_timeout
        self.fallback_anonymous = fallback_anonymous
        self.sleep = sleep
        self.clock = clock
        self.state = SessionState.DISCONNECTED
        self.retry = None
        self.nick = None
        self.reader = None
        self.writer = None
        self._sequence = itertools.count()
        self._join_deadline = None
        self._ping_sent = False

    @property
    def anonymous(self):
        return self.credential is None

    @property
    def joined(self):
        return self.state is SessionState.JOINED

    async def _emit(self, event):
        await self.events.put(event)

    async def _write(self, *frames):
        if self.writer is None:
            raise ConnectionClosed('not connected')
        for frame in frames:
            self.logger.debug('send: %s', irc.mask_frame(frame))
            self.writer.write(frame)
        try:
            await self.writer.drain()
        except OSError as ex:
            raise ConnectionClosed(ex) from ex

    async def disconnect(self):
        """Close the transport.
        """
        writer = self.writer
        self.reader = None
        self.writer = None
        self._join_deadline = None
        if self.state is not SessionState.FAILED:
            self.state = SessionState.DISCONNECTED
        if writer is None:
            return
        self.logger.info('disconnect %s:%s', self.host, self.port)
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), self.response_timeout)
        except (OSError, asyncio.TimeoutError) as ex:
            self.logger.warning('close %s:%s: %r', self.host, self.port, ex)

    async def connect(self):
        """Open the transport, authenticate and join the channel.

        Authenticated sessions are `AUTHENTICATING` until the server
        acknowledges the join; anonymous sessions are `JOINED` at once.

        Raises
        ------
        tuisen.error.ConnectionFailed
        """
        await self.disconnect()
        self.state = SessionState.CONNECTING
        self.logger.info('connect %s:%s tls=%s', self.host, self.port, self.tls)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                self.open_connection(
                    self.host, self.port, ssl=True if self.tls else None
                ),
                self.response_timeout
            )
        except asyncio.TimeoutError as ex:
            self.state = SessionState.DISCONNECTED
            raise ConnectionFailed('connect timeout') from ex
        except OSError as ex:
            self.state = SessionState.DISCONNECTED
            raise ConnectionFailed(ex) from ex

        self.state = SessionState.AUTHENTICATING
        self._ping_sent = False
        if self.credential is None:
            self.nick = self.ANONYMOUS_NICK % random.randint(1000, 99999)
            password = self.ANONYMOUS_PASS
            self.logger.warning('no credential, joining anonymously as %s', self.nick)
        else:
            self.nick = self.credential.username.lower()
            password = self.credential.token
            self.logger.info('login %s', self.nick)

        try:
            await self._write(
                irc.encode_pass(password, oauth=self.credential is not None),
                irc.encode_nick(self.nick),
                irc.encode_join(self.channel)
            )
        except ConnectionClosed as ex:
            raise ConnectionFailed(ex) from ex

        if self.credential is None:
            await self._joined()
        else:
            self._join_deadline = self.clock() + self.response_timeout

    async def _joined(self):
        self.state = SessionState.JOINED
        self._join_deadline = None
        self.retry = None
        self.backoff.reset()
        self.logger.info('joined #%s as %s', self.channel, self.nick)
        await self._emit(ConnectionEstablished(self.channel, self.anonymous))

    def _read_timeout(self):
        if self.state is SessionState.AUTHENTICATING and self._join_deadline is not None:
            return max(0.0, self._join_deadline - self.clock())
        return self.keepalive_timeout

    async def _on_read_timeout(self):
        if self.state is SessionState.AUTHENTICATING:
            raise ConnectionFailed(
                'no join acknowledgement within %ss' % self.response_timeout
            )
        if self._ping_sent:
            raise PingTimeout('no response to PING')
        self.logger.info('idle for %ss, sending PING', self.keepalive_timeout)
        self._ping_sent = True
        await self._write(irc.encode_ping(self.host))

    async def recv(self):
        """Read and handle one frame.

        Raises
        ------
        tuisen.error.TransportError
        tuisen.error.AuthenticationFailure
        """
        if self.reader is None:
            raise ConnectionClosed('not connected')
        try:
            raw = await asyncio.wait_for(self.reader.readline(), self._read_timeout())
        except asyncio.TimeoutError:
            await self._on_read_timeout()
            return
        except ValueError as ex:
            # line longer than the stream limit; the reader skips past it
            self.logger.warning('dropping oversized frame: %s', ex)
            return
        except OSError as ex:
            raise ConnectionClosed(ex) from ex
        if not raw:
            raise ConnectionClosed('connection closed by server')
        self._ping_sent = False
        await self.handle_frame(raw)

    async def handle_frame(self, raw):
        """Decode one frame and emit the matching session event.

        Raises
        ------
        tuisen.error.AuthenticationFailure
        """
        try:
            event = irc.decode(raw)
        except DecodeError as ex:
            self.logger.warning('dropping malformed frame: %s', ex)
            return
        self.logger.debug('recv: %s', event)

        if isinstance(event, irc.Ping):
            await self._write(irc.encode_keepalive_response(event.payload))
            await self._emit(KeepAliveReceived(event.payload))
        elif isinstance(event, irc.Privmsg):
            if event.channel != self.channel:
                self.logger.debug('ignoring message for #%s', event.channel)
                return
            line = ChatLine(event.sender, event.body, next(self._sequence))
            await self._emit(MessageReceived(line))
        elif isinstance(event, irc.AuthFailure):
            raise AuthenticationFailure(event.reason)
        elif self.state is SessionState.AUTHENTICATING and self._is_join_ack(event):
            await self._joined()
        elif isinstance(event, irc.Notice):
            self.logger.info('notice %s: %s', event.target, event.body)
        elif isinstance(event, irc.Unknown):
            self.logger.debug('unhandled frame: %s', event.line)

    def _is_join_ack(self, event):
        if isinstance(event, irc.Join):
            return (event.channel == self.channel
                    and (event.nick or '').lower() == self.nick)
        if isinstance(event, irc.Numeric) and event.code == self.END_OF_NAMES:
            return any(p.lstrip('#').lower() == self.channel for p in event.params)
        return False

    async def send_chat_message(self, body):
        """Send a chat message to the joined channel.

        Twitch does not echo a client's own messages, so the sent line is
        emitted as `MessageReceived` once the write completes.

        Parameters
        ----------
        body : `str`

        Returns
        -------
        `tuisen.events.ChatLine`
            The line as it was emitted.

        Raises
        ------
        tuisen.error.Anonymous
        tuisen.error.NotConnected
        tuisen.error.EncodeError
        """
        if self.credential is None:
            raise Anonymous('anonymous sessions are receive-only')
        if self.state is not SessionState.JOINED or self.writer is None:
            raise NotConnected('not joined to #%s' % self.channel)
        body = irc.validate_body(body)
        self.logger.info('chat %s', body)
        try:
            await self._write(irc.encode_chat_message(self.channel, body))
        except TransportError as ex:
            raise NotConnected(str(ex)) from ex
        line = ChatLine(self.credential.username, body, next(self._sequence))
        await self._emit(MessageReceived(line))
        return line

    async def _connection_lost(self, ex):
        reason = str(ex) or ex.__class__.__name__
        self.logger.error('network error: %r', ex)
        await self.disconnect()
        delay = self.backoff.next_delay()
        self.retry = RetryState(self.backoff.attempt, self.clock() + delay)
        await self._emit(ConnectionLost(reason, self.backoff.attempt, delay))
        self.logger.warning('reconnecting in %.1fs (attempt %d)',
                            delay, self.backoff.attempt)
        await self.sleep(delay)

    async def _authentication_failed(self, ex):
        reason = str(ex)
        self.logger.error('authentication failed: %s', reason)
        await self._emit(AuthenticationFailed(reason))
        if self.fallback_anonymous and self.credential is not None:
            self.logger.warning('falling back to anonymous login')
            self.credential = None
            await self.disconnect()
            return True
        self.state = SessionState.FAILED
        await self.disconnect()
        return False

    async def run(self):
        """Main loop.

        Reconnects with backoff on transport errors until cancelled or
        the credential is rejected.
        """
        try:
            while True:
                try:
                    if self.writer is None:
                        await self.connect()
                    await self.recv()
                except TransportError as ex:
                    await self._connection_lost(ex)
                except AuthenticationFailure as ex:
                    if not await self._authentication_failed(ex):
                        break
        except asyncio.CancelledError:
            self.logger.info('cancelled')
            raise
        finally:
            await self.disconnect()
