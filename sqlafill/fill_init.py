import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .request import FillRequest
from .context import EntityContext
from .metadata import EntityRegistry
from .validation import Validator
from .gateway import PersistenceGateway
from .serializer import Serializer
from .config import get_config
import sqlafill
import flask.app
from typing import Any, Dict, Optional, Union


class EntityFill:
    """This class configures the Flask application to fill, validate and serialize SQLAlchemy entities
    :param app: a Flask application.
    :param registry: `EntityRegistry` holding the entity schemas, a new one is created if omitted
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables
    THROW_EXCEPTION_ON_ERROR = False
    RELATIONS = {}
    DISABLED_RELATIONS = ()
    MAX_FILL_DEPTH = 32
    SERIALIZE_NULL = True
    CORS_DOMAIN = "*"
    CORS_MAX_AGE = 21600
    DEFAULT_GROUPS = ("Default",)
    LOGLEVEL = logging.WARNING

    EXTENSION_NAME = "sqlafill"

    def __init__(self, app: flask.app.Flask = None, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        self.registry = None
        self.context = None
        self.serializer = None
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(
        self,
        app: flask.app.Flask,
        registry: Optional[EntityRegistry] = None,
        context: Optional[EntityContext] = None,
        app_db: Optional[SQLAlchemy] = None,
        **kwargs,
    ) -> None:
        """
        Extension initialization
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if app_db is None:
            app_db = app.extensions["sqlalchemy"]

        sqlafill.DB = self.db = app_db

        app.request_class = FillRequest

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for conf_name, conf_val in kwargs.items():
            setattr(EntityFill, conf_name, conf_val)

        with app.app_context():
            self.context = context if context is not None else EntityContext.from_config()
            serialize_null = bool(get_config("SERIALIZE_NULL"))

        self.registry = registry if registry is not None else EntityRegistry()
        self.validator = Validator(self.registry)
        self.serializer = Serializer(self.registry, serialize_null=serialize_null)
        app.extensions[self.EXTENSION_NAME] = self

        # pylint: disable=unused-argument,unused-variable
        @app.teardown_appcontext
        def shutdown_session(exception=None):
            """cfr. https://flask-sqlalchemy.palletsprojects.com/en/3.1.x/contexts/"""
            self.db.session.remove()

    def register(self, *models: Any) -> None:
        """
        Register the entity schemas of `models` (mapped classes or `EntitySchema` instances)
        """
        for model in models:
            self.registry.register(model)

    def configurator(self, context: Optional[EntityContext] = None):
        """
        :param context: context overriding the application context
        :return: a new (request scoped) `EntityConfigurator`
        """
        from .configurator import EntityConfigurator

        return EntityConfigurator(
            self.registry,
            self.validator,
            context if context is not None else self.context,
            PersistenceGateway(self.db.session),
        )

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        The webserver will catch stderr so we redirect eveything to sys.stderr
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


def get_extension(app: flask.app.Flask) -> EntityFill:
    """
    :param app: Flask application
    :return: the `EntityFill` extension registered on `app`
    """
    try:
        return app.extensions[EntityFill.EXTENSION_NAME]
    except KeyError:
        raise RuntimeError("EntityFill has not been initialized for this application") from None


def dict_merge(dct: Dict[str, Any], merge_dct: Dict[Union[str, int], Any]) -> None:
    """Recursive dict merge used for combining error trees.
    Inspired by :meth:``dict.update()``, instead of updating only
    top-level keys, dict_merge recurses down into dicts nested
    to an arbitrary depth, updating keys. The ``merge_dct`` is merged into ``dct``.
    :param dct: dict onto which the merge is executed
    :param merge_dct: dct merged into dct
    :return: None
    """
    for k in merge_dct:
        if k in dct and isinstance(dct[k], dict) and isinstance(merge_dct[k], dict):
            dict_merge(dct[k], merge_dct[k])
        else:
            # convert to string, for ex. list indexes of to-many children
            dct[str(k)] = merge_dct[k]


#
# DB and logging initialization
#
DB = SQLAlchemy()

try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = EntityFill.init_logging(LOGLEVEL)
