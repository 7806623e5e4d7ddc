#!/usr/bin/env python3
# -*- coding: utf-8 -*-
class TuisenError(Exception):
    ''' Base class for all exceptions in the tuisen package '''

class ConfigError(TuisenError):
    ''' Exception raised when the configuration cannot be used '''

class DecodeError(TuisenError):
    ''' Exception raised when an incoming frame is malformed '''

class EncodeError(TuisenError):
    ''' Exception raised when an outgoing message fails validation '''

class EmptyBody(EncodeError):
    ''' Exception raised when a chat message is empty after trimming '''

class TooLong(EncodeError):
    ''' Exception raised when a chat message exceeds the protocol limit '''

class IllegalCharacter(EncodeError):
    ''' Exception raised when a chat message contains a line break '''

class SendError(TuisenError):
    ''' Base class for chat message send failures '''

class Anonymous(SendError):
    ''' Exception raised when sending without a credential '''

class NotConnected(SendError):
    ''' Exception raised when sending while the channel is not joined '''

class AuthenticationFailure(TuisenError):
    ''' Exception raised when the server rejects the credential '''

class TransportError(Exception):
    ''' Base class for all connection-level exceptions '''

class ConnectionFailed(TransportError):
    ''' Exception raised when the connection to the server fails '''

class ConnectionClosed(TransportError):
    ''' Exception raised when the connection to the server is closed '''

class PingTimeout(ConnectionClosed):
    ''' Exception raised when the connection to the server times out '''
