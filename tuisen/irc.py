#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Twitch IRC line codec.

Turns single inbound lines into protocol events and builds outbound frames.
Nothing here touches the network.
"""
import re
import collections

from .error import DecodeError, EmptyBody, TooLong, IllegalCharacter


MAX_MESSAGE_LENGTH = 500
LINE_TERMINATOR = b'\r\n'

AUTH_FAILURE_NOTICES = (
    'login authentication failed',
    'improperly formatted auth',
    'login unsuccessful',
)

CHANNEL_NAME = re.compile(r'^[a-z0-9_]{1,25}$')

TAG_ESCAPES = {
    ':': ';',
    's': ' ',
    '\\': '\\',
    'r': '\r',
    'n': '\n',
}


RawMessage = collections.namedtuple(
    'RawMessage', ['tags', 'origin', 'command', 'params']
)

Privmsg = collections.namedtuple('Privmsg', ['channel', 'sender', 'body', 'tags'])
Ping = collections.namedtuple('Ping', ['payload'])
Pong = collections.namedtuple('Pong', ['payload'])
Join = collections.namedtuple('Join', ['channel', 'nick'])
Notice = collections.namedtuple('Notice', ['target', 'body'])
AuthFailure = collections.namedtuple('AuthFailure', ['reason'])
Numeric = collections.namedtuple('Numeric', ['code', 'params'])
Unknown = collections.namedtuple('Unknown', ['line'])


def unescape_tag_value(value):
    """Unescape an IRCv3 message tag value.

    Parameters
    ----------
    value : `str`

    Returns
    -------
    `str`
    """
    out = []
    chars = iter(value)
    for char in chars:
        if char != '\\':
            out.append(char)
            continue
        nxt = next(chars, None)
        if nxt is None:
            break
        out.append(TAG_ESCAPES.get(nxt, nxt))
    return ''.join(out)


def parse_tags(raw_tags):
    """Parse `key=value;key2=value2` into a dict.

    Parameters
    ----------
    raw_tags : `None` or `str`

    Returns
    -------
    `dict` of (`str`, `str`)
    """
    tags = {}
    if not raw_tags:
        return tags
    for item in raw_tags.split(';'):
        if not item:
            continue
        key, _, value = item.partition('=')
        tags[key] = unescape_tag_value(value)
    return tags


def parse_message(line):
    """Split one IRC line into tags, origin, command and params.

    Parameters
    ----------
    line : `str`
        Line without the trailing CR LF.

    Returns
    -------
    `RawMessage`

    Raises
    ------
    tuisen.error.DecodeError
    """
    blocks = line.split(' ')
    pos = 0

    raw_tags = None
    if blocks[pos].startswith('@'):
        raw_tags = blocks[pos][1:]
        pos += 1

    origin = None
    if pos < len(blocks) and blocks[pos].startswith(':'):
        origin = blocks[pos][1:]
        pos += 1

    if pos >= len(blocks) or not blocks[pos]:
        raise DecodeError('missing command: %r' % line)
    command = blocks[pos].upper()
    pos += 1

    params = []
    while pos < len(blocks):
        block = blocks[pos]
        if block.startswith(':'):
            params.append(' '.join(blocks[pos:])[1:])
            break
        if block:
            params.append(block)
        pos += 1

    if not params:
        raise DecodeError('no params: %r' % line)

    return RawMessage(parse_tags(raw_tags), origin, command, params)


def parse_sender(origin):
    """Extract the nick from a `nick!user@host` origin.

    Returns `None` for server origins such as `tmi.twitch.tv`.

    Raises
    ------
    tuisen.error.DecodeError
    """
    if not origin or '!' not in origin:
        return None
    nick, _, rest = origin.partition('!')
    user, _, host = rest.partition('@')
    if not nick or not user or not host:
        raise DecodeError('bad origin: %r' % origin)
    return nick


def strip_channel(param):
    if not param.startswith('#'):
        raise DecodeError('bad channel: %r' % param)
    return param[1:].lower()


def decode(raw_frame):
    """Decode one inbound frame.

    Parameters
    ----------
    raw_frame : `bytes` or `str`
        One line, with or without the CR LF terminator.

    Returns
    -------
    `Privmsg`, `Ping`, `Pong`, `Join`, `Notice`, `AuthFailure`,
    `Numeric` or `Unknown`

    Raises
    ------
    tuisen.error.DecodeError
        The line is malformed. Each call sees exactly one line, so the next
        frame is unaffected.
    """
    if isinstance(raw_frame, bytes):
        raw_frame = raw_frame.decode('utf-8', errors='replace')
    line = raw_frame.rstrip('\r\n')
    if not line:
        raise DecodeError('empty frame')

    msg = parse_message(line)
    command = msg.command

    if command == 'PRIVMSG':
        sender = parse_sender(msg.origin)
        if sender is None:
            raise DecodeError('PRIVMSG without sender: %r' % line)
        if len(msg.params) != 2:
            raise DecodeError('bad PRIVMSG params: %r' % line)
        channel = strip_channel(msg.params[0])
        sender = msg.tags.get('display-name') or sender
        return Privmsg(channel, sender, msg.params[1], msg.tags)

    if command in ('PING', 'PONG'):
        payload = msg.params[-1]
        if command == 'PING':
            return Ping(payload)
        return Pong(payload)

    if command == 'JOIN':
        nick = parse_sender(msg.origin)
        return Join(strip_channel(msg.params[0]), nick)

    if command == 'NOTICE':
        body = msg.params[-1]
        target = msg.params[0] if len(msg.params) > 1 else '*'
        if body.strip().lower() in AUTH_FAILURE_NOTICES:
            return AuthFailure(body)
        return Notice(target, body)

    if len(command) == 3 and command.isdigit():
        return Numeric(int(command), msg.params)

    return Unknown(line)


def normalize_channel(name):
    """Normalize a channel name: strip `#`, lowercase, validate.

    Raises
    ------
    ValueError
    """
    name = (name or '').strip()
    if name.startswith('#'):
        name = name[1:]
    name = name.lower()
    if not CHANNEL_NAME.match(name):
        raise ValueError('invalid channel name: %r' % name)
    return name


def validate_body(body):
    """Check an outgoing chat message and return it trimmed.

    Raises
    ------
    tuisen.error.EmptyBody
    tuisen.error.TooLong
    tuisen.error.IllegalCharacter
    """
    body = body.strip()
    if not body:
        raise EmptyBody('message is empty')
    if '\r' in body or '\n' in body:
        raise IllegalCharacter('message contains a line break')
    size = len(body.encode('utf-8'))
    if size > MAX_MESSAGE_LENGTH:
        raise TooLong('message is %d bytes, limit is %d' % (size, MAX_MESSAGE_LENGTH))
    return body


def _frame(text):
    return text.encode('utf-8') + LINE_TERMINATOR


def encode_chat_message(channel, body):
    """Build a `PRIVMSG` frame.

    Parameters
    ----------
    channel : `str`
        Normalized channel name.
    body : `str`
        Message text; trimmed before sending.

    Returns
    -------
    `bytes`

    Raises
    ------
    tuisen.error.EncodeError
    """
    body = validate_body(body)
    return _frame('PRIVMSG #%s :%s' % (channel, body))


def encode_keepalive_response(payload):
    """Answer a server `PING` with the same payload."""
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    return b'PONG :' + payload + LINE_TERMINATOR


def encode_ping(payload):
    return _frame('PING :%s' % payload)


def encode_pass(token, oauth=True):
    """`oauth` - prefix the token with `oauth:` unless it already is."""
    if oauth and not token.startswith('oauth:'):
        token = 'oauth:' + token
    return _frame('PASS %s' % token)


def encode_nick(nick):
    return _frame('NICK %s' % nick.lower())


def encode_join(channel):
    return _frame('JOIN #%s' % channel)


def mask_frame(frame):
    """Return a frame as text suitable for logging, hiding `PASS` secrets."""
    text = frame.decode('utf-8', errors='replace').rstrip('\r\n')
    if text.upper().startswith('PASS '):
        return 'PASS ***'
    return text
