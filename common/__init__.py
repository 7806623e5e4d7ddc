"""Configuration and logging helpers for tuisen."""
from .config import get_config, configure_logger, setup_logging, DEFAULT_SCROLLBACK

__all__ = ['get_config', 'configure_logger', 'setup_logging', 'DEFAULT_SCROLLBACK']
