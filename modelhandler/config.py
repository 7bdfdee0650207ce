# Configuration settings should be set in app.config
# The Settings class attributes and the environment are used as fallbacks, so the
# handlers can also be built outside of an application context
import os
import sys
import logging
from flask import current_app
import modelhandler
from typing import Any, Optional


class Settings:
    """Fallback configuration values, overridden by app.config and ModelApi keyword arguments"""

    # This is the default query limit, used when the client doesn't send a limit= argument
    DEFAULT_PAGE_LIMIT = 50
    DEFAULT_PAGE_OFFSET = 0
    # Requested limits are clamped to this value
    MAX_PAGE_LIMIT = 10000
    # Timestamp column set by soft deletes
    SOFT_DELETE_ATTRIBUTE = "deleted_at"
    # endpoint names, formatted with the url prefix and the collection name
    ENDPOINT_FMT = "{}api.{}"
    INSTANCE_ENDPOINT_FMT = "{}api.{}Id"
    LOGLEVEL = logging.WARNING


def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # not configured in the app or running outside of an app context
        result = getattr(Settings, option, None)
        if result is None:
            result = os.environ.get(option, None)
    return result


def get_int_config(option: str) -> int:
    """
    :param option: configuration parameter
    :return: integer configuration value
    """
    value = get_config(option)
    try:
        return int(value)
    except (TypeError, ValueError):
        modelhandler.log.warning(f'Invalid integer configuration {option}: "{value}"')
        return int(getattr(Settings, option))


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return modelhandler.log.getEffectiveLevel() < logging.INFO


def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
    """
    Specify the log format used in the webserver logs
    The webserver will catch stderr so we redirect everything to sys.stderr
    """
    log = logging.getLogger("modelhandler")
    if log.level == logging.NOTSET:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
        handler.setFormatter(formatter)
        log.setLevel(loglevel)
        log.addHandler(handler)
    return log


try:
    DEBUG = os.getenv("DEBUG", Settings.LOGLEVEL)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = init_logging(LOGLEVEL)
