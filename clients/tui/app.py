#!/usr/bin/env python3
"""tuisen - Twitch chat in the terminal.

Joins one channel, shows the chat with scrollable history and lets you
type messages while new ones keep arriving.

Usage:
    python -m clients.tui.app [config.json]

Keybindings (normal mode):
    - i: Insert mode
    - q: Quit
    - Up/Down: Scroll one line
    - PgUp/PgDn: Scroll one page
    - Home/End: Oldest / newest messages

Keybindings (insert mode):
    - Enter: Send message
    - Esc: Back to normal mode (the typed text is kept)
    - Backspace, Alt+Backspace, Delete, Left/Right, Home/End: Edit

Ctrl+C quits from either mode.
"""

import sys
import asyncio
import logging

from blessed import Terminal

from tuisen import ChatSession, Interaction, Scrollback
from tuisen.error import ConfigError, ConnectionFailed, SendError, EncodeError
from tuisen.interaction import Resize, SendFailed, SendChatMessage, RequestQuit

from common import get_config, setup_logging, DEFAULT_SCROLLBACK

from .keys import to_keypress
from .render import Renderer, viewport_height


class TuisenApp:
    """Composition root: merges key input and session events into one queue.

    The session emits into the queue directly; a key reader task adds key
    and resize events. A single consumer applies every event to the
    Interaction, so UI state is never touched from two places.

    Attributes:
        term (Terminal): blessed terminal
        session (ChatSession): chat connection
        interaction (Interaction): UI state machine
        renderer (Renderer): snapshot painter
        events (asyncio.Queue): merged, ordered event stream
        running (bool): Whether the loop is active
    """
    logger = logging.getLogger(__name__)

    KEY_POLL_TIMEOUT = 0.1

    def __init__(self, session, interaction, term=None, renderer=None):
        self.term = term or Terminal()
        self.session = session
        self.interaction = interaction
        self.renderer = renderer or Renderer(self.term)
        self.events = session.events
        self.running = False
        self._send_tasks = set()
        self._size = None

    async def read_keys(self):
        """Poll the terminal for keys without blocking the event loop.

        inkey() blocks, so it runs in the default executor with a short
        timeout; the terminal size is checked on every tick.
        """
        loop = asyncio.get_running_loop()
        self._size = (self.term.width, self.term.height)
        while self.running:
            key = await loop.run_in_executor(None, self.term.inkey, self.KEY_POLL_TIMEOUT)
            size = (self.term.width, self.term.height)
            if size != self._size:
                self._size = size
                await self.events.put(Resize(viewport_height(self.term)))
            press = to_keypress(key)
            if press is not None:
                await self.events.put(press)

    async def send(self, body):
        """Send a message; failures come back through the event queue."""
        try:
            await self.session.send_chat_message(body)
        except (SendError, EncodeError) as ex:
            self.logger.warning('send failed: %s', ex)
            await self.events.put(SendFailed(body, ex))

    def _spawn_send(self, body):
        task = asyncio.create_task(self.send(body))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    def render(self):
        self.renderer.render(self.interaction.snapshot())

    async def consume(self):
        """Apply events one at a time until a quit is requested."""
        while self.running:
            event = await self.events.get()
            effect = self.interaction.dispatch(event)
            if isinstance(effect, RequestQuit):
                self.logger.info('quit requested')
                self.running = False
                break
            if isinstance(effect, SendChatMessage):
                self._spawn_send(effect.body)
            # coalesce bursts: repaint once the queue is drained
            if self.events.empty():
                self.render()

    def _session_done(self, task):
        if task.cancelled():
            return
        ex = task.exception()
        if ex is not None:
            self.logger.error('session stopped: %r', ex)
        else:
            self.logger.info('session stopped')

    async def shutdown(self, *tasks):
        self.running = False
        tasks = [t for t in tasks if t is not None] + list(self._send_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def run(self):
        """Run the TUI main loop."""
        self.running = True
        session_task = key_task = None
        with self.term.fullscreen(), self.term.raw(), self.term.hidden_cursor():
            self.render()
            session_task = asyncio.create_task(self.session.run())
            session_task.add_done_callback(self._session_done)
            key_task = asyncio.create_task(self.read_keys())
            try:
                await self.consume()
            finally:
                await self.shutdown(key_task, session_task)


async def run_client(argv=None):
    """Load configuration, connect, and run the TUI.

    Returns:
        int: Exit code (0 for a user quit, 1 when the server cannot be reached)
    """
    conf, kwargs = get_config(argv)
    setup_logging(conf)

    events = asyncio.Queue()
    session = ChatSession(events=events, **kwargs)
    try:
        await session.connect()
    except ConnectionFailed as ex:
        await session.disconnect()
        print(f'Cannot connect to {session.host}:{session.port}: {ex}', file=sys.stderr)
        return 1

    term = Terminal()
    interaction = Interaction(
        Scrollback(int(conf.get('scrollback', DEFAULT_SCROLLBACK))),
        viewport_height(term),
        anonymous=session.anonymous
    )
    app = TuisenApp(session, interaction, term)
    await app.run()
    print(term.normal)
    print('Goodbye!')
    return 0


def main(argv=None):
    """Main entry point for the TUI client.

    Returns:
        int: Exit code (0 for success, 1 for connection failure, 2 for bad config)
    """
    try:
        return asyncio.run(run_client(argv))
    except ConfigError as ex:
        print(f'Configuration error: {ex}', file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 0


if __name__ == '__main__':
    sys.exit(main())
