# flake8: noqa: F401
#
# fill_init has to be imported first, it creates the DB and log objects used by the other modules
#
from .fill_init import DB, log, EntityFill, dict_merge, get_extension, FillRequest
from .errors import ApiError, InvalidPayloadError, ValidationFailedError, GenericError, NotFoundError, UnknownEntityError
from .context import EntityContext
from .metadata import EntitySchema, EntityRegistry, Field, Association, DEFAULT_GROUP
from .validation import Validator, NotBlank, NotNull
from .gateway import PersistenceGateway
from .configurator import EntityConfigurator, FillMode
from .serializer import Serializer
from .controller import ApiController, EntityResource, api_decorator
from .api import EntityApi
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "EntityFill",
    "EntityApi",
    "get_extension",
    # metadata:
    "EntitySchema",
    "EntityRegistry",
    "Field",
    "Association",
    "DEFAULT_GROUP",
    # fill:
    "EntityContext",
    "EntityConfigurator",
    "FillMode",
    "PersistenceGateway",
    "Validator",
    "NotBlank",
    "NotNull",
    "Serializer",
    # controllers:
    "ApiController",
    "EntityResource",
    "api_decorator",
    # Errors:
    "ApiError",
    "InvalidPayloadError",
    "ValidationFailedError",
    "GenericError",
    "NotFoundError",
    "UnknownEntityError",
    # request
    "FillRequest",
)
