#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import itertools
import collections


class Scrollback:
    """Bounded chat history.

    Lines are kept in the order they were appended; once `capacity` is
    reached the oldest line is evicted. Scroll positions are offsets from
    the newest line, so eviction never leaves a dangling reference.

    Attributes
    ----------
    capacity : `int`
        Maximum number of retained lines.
    evicted : `int`
        Number of lines evicted so far.
    """

    def __init__(self, capacity=1000):
        if capacity < 1:
            raise ValueError('capacity must be positive')
        self.capacity = capacity
        self.evicted = 0
        self._lines = collections.deque(maxlen=capacity)

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(self._lines)

    def total_lines(self):
        return len(self._lines)

    def append(self, line):
        """Append a line.

        Returns
        -------
        `int`
            Number of lines evicted to make room (0 or 1).
        """
        dropped = 1 if len(self._lines) == self.capacity else 0
        self._lines.append(line)
        self.evicted += dropped
        return dropped

    def clear(self):
        self._lines.clear()

    def max_position(self, viewport_height):
        """Largest valid scroll offset for a viewport."""
        return max(0, len(self._lines) - max(0, viewport_height))

    def clamp(self, position, viewport_height):
        return min(max(0, position), self.max_position(viewport_height))

    def view(self, position, viewport_height):
        """Lines visible at a scroll offset.

        Parameters
        ----------
        position : `int`
            Offset from the newest line; clamped to the valid range.
        viewport_height : `int`
            Number of visible rows.

        Returns
        -------
        `list`
            At most `viewport_height` lines, oldest first.
        """
        if viewport_height <= 0 or not self._lines:
            return []
        position = self.clamp(position, viewport_height)
        end = len(self._lines) - position
        start = max(0, end - viewport_height)
        return list(itertools.islice(self._lines, start, end))
