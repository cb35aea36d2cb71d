# Configuration settings should be set in app.config
# The class variables of sqlafill.EntityFill hold the defaults, environment variables are used as a last resort
import os
import logging
from flask import current_app
import sqlafill
from typing import Any, Optional


def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """

    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # not set in the app config or working outside of the app context
        result = getattr(sqlafill.EntityFill, option, os.environ.get(option, None))
    return result


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return sqlafill.log.getEffectiveLevel() < logging.INFO
