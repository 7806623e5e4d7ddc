#!/usr/bin/env python3
"""Translate blessed keystrokes into tuisen key events."""

from tuisen.interaction import (
    KeyPress,
    KEY_UP, KEY_DOWN, KEY_LEFT, KEY_RIGHT, KEY_HOME, KEY_END,
    KEY_PGUP, KEY_PGDOWN, KEY_ENTER, KEY_BACKSPACE, KEY_DELETE, KEY_ESCAPE,
)


SPECIAL_KEYS = {
    KEY_UP, KEY_DOWN, KEY_LEFT, KEY_RIGHT, KEY_HOME, KEY_END,
    KEY_PGUP, KEY_PGDOWN, KEY_ENTER, KEY_BACKSPACE, KEY_DELETE, KEY_ESCAPE,
}

# Raw-mode byte sequences some terminals send for Alt+Backspace / Backspace
ALT_BACKSPACE = ('\x1b\x7f', '\x1b\x08')
BACKSPACE = ('\x7f', '\x08')


def to_keypress(key):
    """Convert a blessed Keystroke to a KeyPress.

    Args:
        key: blessed.keyboard.Keystroke (empty on inkey timeout)

    Returns:
        KeyPress, or None when there is nothing to deliver
    """
    if not key:
        return None

    text = str(key)
    if key.name == 'KEY_ALT_BACKSPACE' or text in ALT_BACKSPACE:
        return KeyPress(name=KEY_BACKSPACE, alt=True)
    if text in BACKSPACE:
        return KeyPress(name=KEY_BACKSPACE)

    if key.is_sequence:
        if key.name in SPECIAL_KEYS:
            return KeyPress(name=key.name)
        if text in ('\r', '\n'):
            return KeyPress(name=KEY_ENTER)
        return KeyPress(name=key.name or 'KEY_UNKNOWN')

    if len(text) == 1 and ord(text) < 32:
        if text in ('\r', '\n'):
            return KeyPress(name=KEY_ENTER)
        if text == '\x1b':
            return KeyPress(name=KEY_ESCAPE)
        # Ctrl+A .. Ctrl+Z
        return KeyPress(char=chr(ord(text) + 96), ctrl=True)

    return KeyPress(char=text)
