#  This file contains the flask-restful "Resource" objects:
#  - ApiController: base class with the request => configurator => response plumbing
#  - EntityResource: generic resource for an exposed entity type (collection and instances)
#
#  and the decorators that add cors and error handling to the http methods
#
# pylint: disable=line-too-long, logging-format-interpolation
#
import logging
from functools import wraps
from http import HTTPStatus
from typing import Any, Dict, Iterable, Optional

import werkzeug
from flask import current_app, jsonify, make_response as flask_make_response, request
from flask_restful import Resource, abort
from flask_restful.utils import cors

import sqlafill
from .config import get_config
from .errors import ApiError, NotFoundError, ValidationFailedError
from .fill_init import get_extension

# Methods announced in the Access-Control-Allow-Methods header, the resource methods are added
CORS_METHODS = ["POST", "GET", "OPTIONS"]
HTTP_METHODS = ["get", "post", "patch", "put", "delete", "options"]


class ApiController(Resource):
    """
    Superclass for the controllers that save entities from json payloads

        class UserController(ApiController):
            def post(self):
                errors = self.save_entity(self.get_data(), User)
                ...
                return self.response_entity(self.configurator.get_entity(), ["public"])
    """

    # None: use the application configuration (THROW_EXCEPTION_ON_ERROR)
    throw_exception_on_error: Optional[bool] = None

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.extension = get_extension(current_app)
        context = self.extension.context
        if self.throw_exception_on_error is not None:
            context = context.with_overrides(throw_exception_on_error=self.throw_exception_on_error)
        # configurators hold the root entity, one per request
        self.configurator = self.extension.configurator(context)

    @property
    def session(self):
        return self.extension.db.session

    @property
    def registry(self):
        return self.extension.registry

    def get_request(self):
        return request

    def get_entity_context(self):
        return self.configurator.get_entity_context()

    def get_data(self, req=None) -> Dict[str, Any]:
        """
        :param req: request, defaults to the current request
        :return: json object in the request body
        """
        if req is None:
            req = self.get_request()
        return req.get_payload()

    def handle_data(self, data) -> Dict[str, Any]:
        """
        :param data: request or payload dict
        :return: payload dict
        """
        if isinstance(data, dict):
            return data
        return self.get_data(data)

    def response(self, data: Any, status: int = HTTPStatus.OK.value):
        """
        :param data: json serializable data
        :param status: http status code
        :return: flask response
        """
        return flask_make_response(jsonify(data), status)

    def response_entity(self, data: Any, groups: Iterable[str], status: int = HTTPStatus.OK.value):
        """
        Serialize entity(ies) with the fields in `groups` and create the response
        """
        return self.response(self.extension.serializer.to_array(data, groups), status)

    def create_entity(self, data, model) -> Dict[str, Any]:
        """
        :return: error tree
        """
        return self.configurator.create(self.handle_data(data), model)

    def save_entity(self, data, model) -> Dict[str, Any]:
        """
        :return: error tree
        """
        return self.configurator.save(self.handle_data(data), model)

    def update_entity(self, data, model) -> Dict[str, Any]:
        """
        :return: error tree
        """
        return self.configurator.update(self.handle_data(data), model)

    def options(self, *args, **kwargs):
        """
        HTTP OPTIONS, the response is generated by the cors decorator
        """
        return self.response({})


class EntityResource(ApiController):
    """
    Generic resource for an entity type
    - /<collection>/ : GET the collection, POST a new entity
    - /<collection>/<object_id>/ : GET or PATCH an entity

    Responses contain the fields in `groups`
    """

    model = None
    groups = ("Default",)
    throw_exception_on_error = True

    @property
    def schema(self):
        return self.registry.get(self.model)

    def get_instance(self, object_id: str) -> Any:
        """
        :param object_id: url object id, composite ids are joined with the schema delimiter
        :return: entity instance
        """
        identity = self.schema.parse_object_id(object_id)
        instance = self.registry.load(self.schema, identity)
        if instance is None:
            raise NotFoundError(f'Invalid "{self.schema.name}" ID "{object_id}"')
        return instance

    def get(self, object_id: Optional[str] = None):
        """
        HTTP GET: retrieve the collection or an instance
        """
        if object_id is None:
            return self.response_entity(self.session.query(self.model).all(), self.groups)
        return self.response_entity(self.get_instance(object_id), self.groups)

    def post(self):
        """
        HTTP POST: create a new instance
        """
        errors = self.create_entity(self.get_data(), self.model)
        if errors:
            sqlafill.log.info(f"Created {self.schema.name} with errors {errors}")
        return self.response_entity(self.configurator.get_entity(), self.groups, HTTPStatus.CREATED.value)

    def patch(self, object_id: str):
        """
        HTTP PATCH: update an existing instance, the identifiers are taken from the url
        """
        data = dict(self.get_data())
        data.update(self.schema.parse_object_id(object_id))
        self.update_entity(data, self.model)
        return self.response_entity(self.configurator.get_entity(), self.groups)


def http_method_decorator(fun):
    """Decorator for the http methods
    - convert all exceptions to a json error response
    - roll back the session on errors

    :param fun: http method
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        try:
            return fun(*args, **kwargs)

        except ApiError as exc:
            status_code = exc.status_code
            error = dict(title=exc.title, detail=exc.message, code=status_code)
            if isinstance(exc, ValidationFailedError):
                error["meta"] = exc.errors

        except werkzeug.exceptions.NotFound:
            status_code = HTTPStatus.NOT_FOUND.value
            error = dict(title=HTTPStatus.NOT_FOUND.phrase, detail="Not Found", code=status_code)

        except Exception as exc:  # pylint: disable=broad-except
            status_code = getattr(exc, "status_code", HTTPStatus.INTERNAL_SERVER_ERROR.value)
            sqlafill.log.exception(exc)
            if sqlafill.log.getEffectiveLevel() > logging.DEBUG:
                message = "Logging Disabled"
            else:
                message = str(exc)
            error = dict(title=HTTPStatus.INTERNAL_SERVER_ERROR.phrase, detail=message, code=status_code)

        get_extension(current_app).db.session.rollback()
        sqlafill.log.error(f"{error['code']} {error['title']}: {error['detail']}")
        abort(status_code, errors=[error])

    return method_wrapper


def api_decorator(cls):
    """Decorator for the controller classes:
    - add cors headers
    - add generic exception handling

    :param cls: ApiController subclass
    :return: decorated class
    """
    cors_domain = get_config("CORS_DOMAIN")
    cors_methods = CORS_METHODS + [name.upper() for name in HTTP_METHODS if hasattr(cls, name) and name.upper() not in CORS_METHODS]
    for method_name in HTTP_METHODS:
        method = getattr(cls, method_name, None)
        if not method:
            continue
        decorated_method = method
        if cors_domain is not None:
            decorated_method = cors.crossdomain(origin=cors_domain, methods=cors_methods, max_age=get_config("CORS_MAX_AGE"))(decorated_method)
        decorated_method = http_method_decorator(decorated_method)
        setattr(cls, method_name, decorated_method)
    return cls
