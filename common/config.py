#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import sys
import json
import logging

from tuisen import Backoff, Credential, normalize_channel
from tuisen.error import ConfigError


DEFAULT_CHANNEL = 'forsen'
DEFAULT_LOG_FILE = 'tuisen.log'
DEFAULT_SCROLLBACK = 1000
LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'

logger = logging.getLogger(__name__)


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = logging.FileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def load_config(path):
    """Read a JSON configuration file

    Args:
        path: Path to the file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: The file cannot be read or is not a JSON object
    """
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            conf = json.load(fp)
    except OSError as ex:
        raise ConfigError('cannot read %s: %s' % (path, ex)) from ex
    except ValueError as ex:
        raise ConfigError('invalid JSON in %s: %s' % (path, ex)) from ex
    if not isinstance(conf, dict):
        raise ConfigError('%s must contain a JSON object' % path)
    return conf


def get_credential(conf):
    """Build the login credential, or None for an anonymous session

    Both 'username' and 'token' are required; one without the other is
    treated as anonymous.
    """
    username = conf.get('username') or None
    token = conf.get('token') or None
    if username and token:
        return Credential(str(username), str(token))
    if username or token:
        logger.warning('username and token must both be set, joining anonymously')
    return None


def get_log_level(conf):
    level = getattr(logging, str(conf.get('log_level', 'info')).upper(), None)
    if not isinstance(level, int):
        raise ConfigError('invalid log_level: %r' % conf.get('log_level'))
    return level


def setup_logging(conf):
    """Send all log records to the configured file

    The terminal belongs to the UI, so nothing is logged to stderr.
    """
    return configure_logger(
        logging.getLogger(),
        log_file=conf.get('log_file', DEFAULT_LOG_FILE),
        log_format=LOG_FORMAT,
        log_level=get_log_level(conf)
    )


def get_config(argv=None):
    """Load configuration from the JSON file named on the command line

    Without a file the client joins the default channel anonymously.

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Tuple of (conf, kwargs) where:
            conf: Full configuration dictionary
            kwargs: ChatSession initialization parameters

    Raises:
        ConfigError: Bad usage, unreadable file or unusable values
    """
    if argv is None:
        argv = sys.argv
    if len(argv) > 2:
        raise ConfigError('usage: %s [config file]' % argv[0])

    conf = load_config(argv[1]) if len(argv) == 2 else {}

    try:
        channel = normalize_channel(conf.get('channel') or DEFAULT_CHANNEL)
    except ValueError as ex:
        raise ConfigError(str(ex)) from ex

    get_log_level(conf)

    try:
        backoff = Backoff(
            initial=float(conf.get('backoff_initial', 1.0)),
            maximum=float(conf.get('backoff_max', 60.0))
        )
        kwargs = {
            'channel': channel,
            'credential': get_credential(conf),
            'tls': bool(conf.get('tls', True)),
            'port': int(conf['port']) if conf.get('port') else None,
            'backoff': backoff,
            'response_timeout': float(conf.get('response_timeout', 10.0)),
            'keepalive_timeout': float(conf.get('keepalive_timeout', 300.0)),
            'fallback_anonymous': bool(conf.get('fallback_anonymous', False)),
        }
        if conf.get('host'):
            kwargs['host'] = str(conf['host'])
        if int(conf.get('scrollback', DEFAULT_SCROLLBACK)) < 1:
            raise ValueError('scrollback must be positive')
    except (TypeError, ValueError) as ex:
        raise ConfigError(str(ex)) from ex

    return conf, kwargs
