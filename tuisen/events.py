#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Values passed between the session, the state machine and the front end."""
import collections


Credential = collections.namedtuple('Credential', ['username', 'token'])

ChatLine = collections.namedtuple('ChatLine', ['sender', 'body', 'received_at'])

# Session events, produced only by `tuisen.session.ChatSession`.
MessageReceived = collections.namedtuple('MessageReceived', ['line'])
ConnectionEstablished = collections.namedtuple(
    'ConnectionEstablished', ['channel', 'anonymous']
)
ConnectionLost = collections.namedtuple(
    'ConnectionLost', ['reason', 'attempt', 'retry_in']
)
KeepAliveReceived = collections.namedtuple('KeepAliveReceived', ['payload'])
AuthenticationFailed = collections.namedtuple('AuthenticationFailed', ['reason'])

SESSION_EVENTS = (
    MessageReceived,
    ConnectionEstablished,
    ConnectionLost,
    KeepAliveReceived,
    AuthenticationFailed,
)
