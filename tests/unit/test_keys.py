"""
Unit tests for clients/tui/keys.py
"""
import pytest
from blessed.keyboard import Keystroke

from clients.tui.keys import to_keypress
from tuisen import KeyPress
from tuisen.interaction import KEY_UP, KEY_ENTER, KEY_BACKSPACE, KEY_ESCAPE


class TestToKeypress:

    def test_timeout(self):
        assert to_keypress(Keystroke('')) is None

    def test_printable(self):
        assert to_keypress(Keystroke('a')) == KeyPress('a')
        assert to_keypress(Keystroke('é')) == KeyPress('é')

    def test_named_sequence(self):
        assert to_keypress(Keystroke('\x1b[A', code=259, name='KEY_UP')) == KeyPress(name=KEY_UP)

    def test_unknown_sequence_keeps_name(self):
        press = to_keypress(Keystroke('\x1b[15~', code=269, name='KEY_F5'))
        assert press.name == 'KEY_F5'
        assert not press.printable

    @pytest.mark.parametrize('text', ['\r', '\n'])
    def test_enter(self, text):
        assert to_keypress(Keystroke(text)) == KeyPress(name=KEY_ENTER)

    def test_escape(self):
        assert to_keypress(Keystroke('\x1b')) == KeyPress(name=KEY_ESCAPE)

    @pytest.mark.parametrize('text', ['\x7f', '\x08'])
    def test_backspace(self, text):
        assert to_keypress(Keystroke(text)) == KeyPress(name=KEY_BACKSPACE)

    def test_alt_backspace(self):
        assert to_keypress(Keystroke('\x1b\x7f')) == KeyPress(name=KEY_BACKSPACE, alt=True)

    def test_ctrl_c(self):
        press = to_keypress(Keystroke('\x03'))
        assert press == KeyPress('c', ctrl=True)
