#!/usr/bin/env python3
"""Paint tuisen snapshots with blessed.

Layout:
    row 0            status bar (status, scroll indicator, clock)
    rows 1 .. h-3    chat area
    row h-2          mode title and message length counter
    row h-1          input line
"""

import textwrap
from datetime import datetime

from tuisen.interaction import Mode
from tuisen.irc import MAX_MESSAGE_LENGTH


CHROME_ROWS = 3


def viewport_height(term):
    """Number of chat rows that fit in the terminal."""
    return max(1, term.height - CHROME_ROWS)


class Renderer:
    """Draws a Snapshot to the terminal.

    Attributes:
        term (Terminal): blessed terminal
        user_colors (dict): Username to color mapping for consistency
    """

    USERNAME_COLORS = [
        'cyan', 'green', 'yellow', 'blue', 'magenta',
        'bright_cyan', 'bright_green', 'bright_yellow',
        'bright_blue', 'bright_magenta'
    ]

    def __init__(self, term, clock_format='%H:%M:%S'):
        self.term = term
        self.clock_format = clock_format
        self.user_colors = {}
        self._color_index = 0

    def get_username_color(self, username):
        """Get a consistent color for a username."""
        if username not in self.user_colors:
            color = self.USERNAME_COLORS[self._color_index % len(self.USERNAME_COLORS)]
            self.user_colors[username] = color
            self._color_index += 1
        return self.user_colors[username]

    def _fit(self, text, width):
        if len(text) < width:
            return text + ' ' * (width - len(text))
        return text[:width]

    def status_bar(self, snap):
        width = self.term.width
        left = ' ' + snap.status
        if snap.anonymous:
            left += '  (anonymous, read-only)'
        right_parts = []
        if snap.position > 0:
            right_parts.append('[+%d]' % snap.position)
        right_parts.append(datetime.now().strftime(self.clock_format))
        right = '  '.join(right_parts) + ' '

        space = width - len(left) - len(right)
        if space > 0:
            line = left + ' ' * space + right
        else:
            line = self._fit(left, width)

        if snap.connected:
            return self.term.black_on_cyan(self._fit(line, width))
        return self.term.white_on_red(self._fit(line, width))

    def chat_rows(self, snap, height):
        """Format visible lines, wrapping long messages.

        When wrapping overflows the viewport the last `height` rows are kept,
        except when the view starts at the oldest retained line: then the
        first `height` rows are kept.
        """
        width = max(1, self.term.width)
        rows = []
        for line in snap.lines:
            prefix = '<%s> ' % line.sender
            wrapped = textwrap.wrap(
                line.body,
                width=max(1, width - len(prefix)),
                break_long_words=True,
                break_on_hyphens=True
            ) or ['']
            color = getattr(self.term, self.get_username_color(line.sender), self.term.white)
            rows.append(color(prefix) + wrapped[0])
            indent = ' ' * len(prefix)
            for continuation in wrapped[1:]:
                rows.append(indent + continuation)
        if height <= 0:
            return []
        at_top = snap.position > 0 and snap.total_lines - snap.position <= len(snap.lines)
        if at_top:
            return rows[:height]
        return rows[-height:]

    def mode_bar(self, snap):
        width = self.term.width
        title = '[ %s ]' % snap.mode.value
        if snap.mode is not Mode.INSERT:
            return self.term.bright_black(self._fit('── ' + title + ' ' + '─' * width, width))

        size = len(snap.input_text.strip().encode('utf-8'))
        counter = '%d/%d' % (size, MAX_MESSAGE_LENGTH)
        fill = max(0, width - len(title) - len(counter) - 9)
        counter_style = self.term.bright_red if size > MAX_MESSAGE_LENGTH else self.term.bright_blue
        return (self.term.bright_blue('── ' + title + ' ' + '─' * fill + ' [ ')
                + counter_style(counter)
                + self.term.bright_blue(' ]'))

    def input_line(self, snap):
        width = self.term.width
        prompt = '> '
        avail = max(1, width - len(prompt) - 1)
        text, cursor = snap.input_text, snap.cursor

        # scroll horizontally so the cursor stays visible
        start = max(0, cursor - avail)
        visible = text[start:start + avail]
        if snap.mode is not Mode.INSERT:
            return self.term.bright_black(prompt) + visible

        pos = cursor - start
        under = visible[pos] if pos < len(visible) else ' '
        return (self.term.bright_white(prompt) + visible[:pos]
                + self.term.reverse(under) + visible[pos + 1:])

    def render(self, snap):
        """Render the complete screen for a snapshot."""
        term = self.term
        height = viewport_height(term)
        out = [term.move_xy(0, 0) + self.status_bar(snap)]

        rows = self.chat_rows(snap, height)
        # bottom-align when there are fewer rows than the viewport
        top = 1 + height - len(rows)
        for y in range(1, 1 + height):
            out.append(term.move_xy(0, y) + term.clear_eol)
        for i, row in enumerate(rows):
            out.append(term.move_xy(0, top + i) + row)

        out.append(term.move_xy(0, term.height - 2) + term.clear_eol + self.mode_bar(snap))
        out.append(term.move_xy(0, term.height - 1) + term.clear_eol + self.input_line(snap))
        print(''.join(out), end='', flush=True)
