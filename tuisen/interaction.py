#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Interaction state machine.

All UI state (mode, input buffer, scroll position, status, scrollback) is
owned by one `Interaction` and mutated only through `Interaction.dispatch`,
which is called from a single consumer task. Dispatch never performs I/O;
anything the outside world has to do is returned as an effect.
"""
import enum
import time
import logging
import collections

from . import irc
from .error import EncodeError, Anonymous
from .events import (
    MessageReceived, ConnectionEstablished, ConnectionLost,
    KeepAliveReceived, AuthenticationFailed
)


class Mode(enum.Enum):
    NORMAL = 'normal'
    INSERT = 'insert'


KEY_UP = 'KEY_UP'
KEY_DOWN = 'KEY_DOWN'
KEY_LEFT = 'KEY_LEFT'
KEY_RIGHT = 'KEY_RIGHT'
KEY_HOME = 'KEY_HOME'
KEY_END = 'KEY_END'
KEY_PGUP = 'KEY_PGUP'
KEY_PGDOWN = 'KEY_PGDOWN'
KEY_ENTER = 'KEY_ENTER'
KEY_BACKSPACE = 'KEY_BACKSPACE'
KEY_DELETE = 'KEY_DELETE'
KEY_ESCAPE = 'KEY_ESCAPE'


class KeyPress(collections.namedtuple('KeyPress', ['char', 'name', 'ctrl', 'alt'])):
    """Normalized key event.

    `char` is the printable character (empty for special keys), `name` the
    special key name (`None` for printable keys).
    """
    __slots__ = ()

    def __new__(cls, char='', name=None, ctrl=False, alt=False):
        return super().__new__(cls, char, name, ctrl, alt)

    @property
    def printable(self):
        return (self.name is None and len(self.char) == 1
                and not self.ctrl and self.char.isprintable())


Resize = collections.namedtuple('Resize', ['viewport_height'])
SendFailed = collections.namedtuple('SendFailed', ['body', 'error'])

SendChatMessage = collections.namedtuple('SendChatMessage', ['body'])
RequestQuit = collections.namedtuple('RequestQuit', [])

Snapshot = collections.namedtuple('Snapshot', [
    'mode', 'input_text', 'cursor', 'lines', 'status',
    'position', 'total_lines', 'connected', 'anonymous'
])


class InputBuffer:
    """Editable line with a cursor."""

    def __init__(self, text=''):
        self.text = text
        self.cursor = len(text)

    def __bool__(self):
        return bool(self.text)

    def insert(self, char):
        self.text = self.text[:self.cursor] + char + self.text[self.cursor:]
        self.cursor += len(char)

    def backspace(self):
        if self.cursor == 0:
            return
        self.text = self.text[:self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1

    def delete(self):
        self.text = self.text[:self.cursor] + self.text[self.cursor + 1:]

    def delete_word(self):
        """Delete the word before the cursor, keeping one separating space."""
        head = self.text[:self.cursor].rstrip()
        cut = head.rfind(' ')
        head = head[:cut + 1] if cut >= 0 else ''
        self.text = head + self.text[self.cursor:]
        self.cursor = len(head)

    def move(self, delta):
        self.cursor = min(max(0, self.cursor + delta), len(self.text))

    def home(self):
        self.cursor = 0

    def end(self):
        self.cursor = len(self.text)

    def clear(self):
        self.text = ''
        self.cursor = 0


class Interaction:
    """Single-threaded owner of all UI state.

    Attributes
    ----------
    scrollback : `tuisen.scrollback.Scrollback`
    viewport_height : `int`
        Number of chat lines visible at once.
    mode : `Mode`
    input : `InputBuffer`
    position : `int`
        Scroll offset from the newest line; 0 follows new messages.
    status : `str`
        Status line text.
    connected : `bool`
    anonymous : `bool`
        Sending is disabled for anonymous sessions.
    auth_failed : `bool`
        The server rejected the credential; status stays until reconnected.
    last_keepalive : `None` or `float`
    """
    logger = logging.getLogger(__name__)

    def __init__(self, scrollback, viewport_height, anonymous=False, clock=time.time):
        self.scrollback = scrollback
        self.viewport_height = max(0, viewport_height)
        self.mode = Mode.NORMAL
        self.input = InputBuffer()
        self.position = 0
        self.status = 'Connecting...'
        self.connected = False
        self.anonymous = anonymous
        self.auth_failed = False
        self.last_keepalive = None
        self.clock = clock

    @property
    def max_position(self):
        return self.scrollback.max_position(self.viewport_height)

    def snapshot(self):
        return Snapshot(
            mode=self.mode,
            input_text=self.input.text,
            cursor=self.input.cursor,
            lines=self.scrollback.view(self.position, self.viewport_height),
            status=self.status,
            position=self.position,
            total_lines=self.scrollback.total_lines(),
            connected=self.connected,
            anonymous=self.anonymous,
        )

    def dispatch(self, event):
        """Apply one input event.

        Parameters
        ----------
        event : `KeyPress`, `Resize`, `SendFailed` or a session event

        Returns
        -------
        `None`, `SendChatMessage` or `RequestQuit`
        """
        if isinstance(event, KeyPress):
            return self.handle_key(event)
        if isinstance(event, MessageReceived):
            self.add_line(event.line)
        elif isinstance(event, ConnectionEstablished):
            self.connected = True
            self.auth_failed = False
            self.anonymous = event.anonymous
            self.status = 'Joined #%s' % event.channel
        elif isinstance(event, ConnectionLost):
            self.connected = False
            self.status = 'Disconnected: %s (retry %d in %.0fs)' % (
                event.reason, event.attempt, event.retry_in)
        elif isinstance(event, AuthenticationFailed):
            self.connected = False
            self.auth_failed = True
            self.status = 'Authentication failed: %s' % event.reason
        elif isinstance(event, KeepAliveReceived):
            self.last_keepalive = self.clock()
        elif isinstance(event, Resize):
            self.viewport_height = max(0, event.viewport_height)
            self.position = self.scrollback.clamp(self.position, self.viewport_height)
        elif isinstance(event, SendFailed):
            self.send_failed(event.body, event.error)
        else:
            self.logger.warning('unknown event %r', event)
        return None

    def add_line(self, line):
        """Append a received line, keeping the reader's place in history."""
        self.scrollback.append(line)
        if self.position > 0:
            self.position = self.scrollback.clamp(self.position + 1, self.viewport_height)

    def send_failed(self, body, error):
        if isinstance(error, Anonymous):
            self.anonymous = True
        self.status = 'Not sent: %s' % error
        if not self.input:
            self.input = InputBuffer(body)

    def scroll(self, delta):
        self.position = self.scrollback.clamp(self.position + delta, self.viewport_height)

    def handle_key(self, key):
        if key.ctrl and key.char.lower() == 'c':
            return RequestQuit()
        if self.mode is Mode.NORMAL:
            return self._handle_normal_key(key)
        return self._handle_insert_key(key)

    def _handle_normal_key(self, key):
        if key.printable:
            if key.char == 'q':
                return RequestQuit()
            if key.char == 'i':
                self.mode = Mode.INSERT
            return None

        if key.name == KEY_UP:
            self.scroll(1)
        elif key.name == KEY_DOWN:
            self.scroll(-1)
        elif key.name == KEY_PGUP:
            self.scroll(max(1, self.viewport_height))
        elif key.name == KEY_PGDOWN:
            self.scroll(-max(1, self.viewport_height))
        elif key.name == KEY_HOME:
            self.position = self.max_position
        elif key.name == KEY_END:
            self.position = 0
        return None

    def _handle_insert_key(self, key):
        if key.printable and not key.alt:
            self.input.insert(key.char)
            return None

        if key.name == KEY_ESCAPE:
            self.mode = Mode.NORMAL
        elif key.name == KEY_BACKSPACE:
            if key.alt:
                self.input.delete_word()
            else:
                self.input.backspace()
        elif key.name == KEY_DELETE:
            self.input.delete()
        elif key.name == KEY_LEFT:
            self.input.move(-1)
        elif key.name == KEY_RIGHT:
            self.input.move(1)
        elif key.name == KEY_HOME:
            self.input.home()
        elif key.name == KEY_END:
            self.input.end()
        elif key.name == KEY_ENTER:
            return self.submit()
        return None

    def submit(self):
        try:
            body = irc.validate_body(self.input.text)
        except EncodeError as ex:
            self.status = 'Not sent: %s' % ex
            return None
        self.input.clear()
        return SendChatMessage(body)
