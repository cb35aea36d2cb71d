# api.py: flask-restful Api subclass that exposes entity types
#
# pylint: disable=line-too-long, logging-format-interpolation
#
from typing import Any, Iterable, Optional

from flask_restful import Api as FRApiBase

import sqlafill
from .config import get_config
from .controller import EntityResource, api_decorator
from .fill_init import EntityFill
from .metadata import EntityRegistry

COLLECTION_URL_FMT = "{}/{}/"
INSTANCE_URL_FMT = COLLECTION_URL_FMT + "<string:object_id>/"
ENDPOINT_FMT = "{}api.{}"


class EntityApi(FRApiBase):
    """
    Subclass of the flask_restful Api class where we add the expose_object method
    this method creates the endpoints for an entity type:

        api = EntityApi(app)
        api.expose_object(User, groups=["public"])

    - /users/ : GET, POST
    - /users/<object_id>/ : GET, PATCH
    """

    def __init__(self, app=None, registry: Optional[EntityRegistry] = None, prefix: str = "", **kwargs) -> None:
        super().__init__(app, prefix=prefix, **kwargs)
        if app is not None and EntityFill.EXTENSION_NAME not in app.extensions:
            EntityFill(app, registry=registry)

    @staticmethod
    def collection_name(model: type) -> str:
        """
        :return: the url path segment of `model`, its table name or else its class name
        """
        return getattr(model, "__tablename__", None) or model.__name__

    def expose_object(self, model: type, groups: Optional[Iterable[str]] = None, url_prefix: str = "", **properties: Any) -> type:
        """This method creates the API url endpoints for `model`
        :param model: SQLAlchemy model class
        :param groups: serialization groups of the responses, defaults to DEFAULT_GROUPS
        :param url_prefix: url prefix
        :param properties: additional resource class attributes
        :return: the resource class

        creates a class of the form

            @api_decorator
            class User_API(EntityResource):
                model = User
                groups = ("public",)

        and adds it as an api resource to /users/ and /users/<object_id>/
        """
        if self.app is not None:
            # register the schema before the first request
            sqlafill.get_extension(self.app).register(model)
            with self.app.app_context():
                api_class = self._create_resource_class(model, groups, properties)
        else:
            api_class = self._create_resource_class(model, groups, properties)

        collection_name = self.collection_name(model)
        url = COLLECTION_URL_FMT.format(url_prefix, collection_name)
        endpoint = ENDPOINT_FMT.format(url_prefix.strip("/"), collection_name)
        sqlafill.log.info(f"Exposing {model.__name__} on {url}, endpoint: {endpoint}")
        self.add_resource(api_class, url, endpoint=endpoint, methods=["GET", "POST", "OPTIONS"])

        url = INSTANCE_URL_FMT.format(url_prefix, collection_name)
        endpoint = ENDPOINT_FMT.format(url_prefix.strip("/"), collection_name + "Id")
        sqlafill.log.info(f"Exposing {collection_name} instances on {url}, endpoint: {endpoint}")
        self.add_resource(api_class, url, endpoint=endpoint, methods=["GET", "PATCH", "OPTIONS"])

        return api_class

    def expose(self, *models: type, groups: Optional[Iterable[str]] = None) -> None:
        for model in models:
            self.expose_object(model, groups=groups)

    @staticmethod
    def _create_resource_class(model: type, groups: Optional[Iterable[str]], properties: dict) -> type:
        if groups is None:
            groups = get_config("DEFAULT_GROUPS")
        api_class_name = f"{model.__name__}_API"
        properties["model"] = model
        properties["groups"] = tuple(groups)
        return api_decorator(type(api_class_name, (EntityResource,), properties))
