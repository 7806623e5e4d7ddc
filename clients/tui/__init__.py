"""
TUI (Terminal User Interface) Chat Client for Twitch

A terminal chat client with vim-style modes:

- Full color support using blessed
- Scrollable chat history that stays put while you read
- Normal mode for scrolling, insert mode for typing
- Automatic reconnect with backoff
- Async architecture for responsive UI

Usage:
    python -m clients.tui path/to/config.json
"""
