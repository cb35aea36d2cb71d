# metadata.py: entity schema descriptors and the registry that holds them
#
# pylint: disable=logging-format-interpolation,line-too-long,protected-access
#
"""
An `EntitySchema` describes how a payload maps onto an entity type:

identifiers:
Type: Tuple[str]
The attribute names of the primary key, in mapper order.

fields:
Type: Dict[str, Field]
The scalar attributes, including the identifiers. Each field holds the
getter/setter pair, the payload value parser, the constraint validators
and the serialization groups.

associations:
Type: Dict[str, Association]
The relationships, with the target type and the cardinality.

validators:
Type: Tuple[Callable]
Entity level constraints, called with the entity instance.

The schema is built once, either explicitly by the host application or with
`EntitySchema.from_model` from the SQLAlchemy mapper. Column and relationship
`info` dictionaries carry the extra metadata:

    email = db.Column(db.String, info={"groups": ["public"], "validate": [NotBlank()]})
    books = db.relationship("Book", info={"groups": ["public"]})
"""
from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from sqlalchemy import inspect as sqla_inspect
from sqlalchemy.exc import NoInspectionAvailable

import sqlafill
from .attr_parse import parse_attr
from .errors import InvalidPayloadError, UnknownEntityError

DEFAULT_GROUP = "Default"


def _attr_getter(name: str) -> Callable[[Any], Any]:
    return operator.attrgetter(name)


def _attr_setter(name: str) -> Callable[[Any, Any], None]:
    def setter(entity: Any, value: Any) -> None:
        setattr(entity, name, value)

    return setter


def _no_parse(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class Field:
    """
    Scalar entity attribute
    """

    name: str
    python_type: Optional[type] = None
    parser: Callable[[Any], Any] = _no_parse
    validators: Tuple[Callable[[Any], Any], ...] = ()
    groups: frozenset = frozenset({DEFAULT_GROUP})
    getter: Optional[Callable[[Any], Any]] = None
    setter: Optional[Callable[[Any, Any], None]] = None

    def __post_init__(self) -> None:
        if self.getter is None:
            object.__setattr__(self, "getter", _attr_getter(self.name))
        if self.setter is None:
            object.__setattr__(self, "setter", _attr_setter(self.name))
        object.__setattr__(self, "validators", tuple(self.validators))
        object.__setattr__(self, "groups", frozenset(self.groups or {DEFAULT_GROUP}))

    @classmethod
    def from_column(cls, name: str, column) -> "Field":
        """
        :param name: model attribute name
        :param column: sqlalchemy.sql.schema.Column
        :return: Field
        """
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            python_type = None
        info = column.info or {}
        return cls(
            name,
            python_type=python_type,
            parser=info.get("parse", lambda value: parse_attr(column, value)),
            validators=info.get("validate", ()),
            groups=info.get("groups", ()),
        )

    def get(self, entity: Any) -> Any:
        return self.getter(entity)

    def set(self, entity: Any, value: Any) -> None:
        self.setter(entity, value)

    def parse(self, value: Any) -> Any:
        return self.parser(value)


@dataclass(frozen=True)
class Association:
    """
    Relationship between two entity types
    `target` is the model class or the registered type name of the related entity
    """

    name: str
    target: Union[type, str]
    many: bool = False
    groups: frozenset = frozenset({DEFAULT_GROUP})
    getter: Optional[Callable[[Any], Any]] = None
    setter: Optional[Callable[[Any, Any], None]] = None

    def __post_init__(self) -> None:
        if self.getter is None:
            object.__setattr__(self, "getter", _attr_getter(self.name))
        if self.setter is None:
            object.__setattr__(self, "setter", _attr_setter(self.name))
        object.__setattr__(self, "groups", frozenset(self.groups or {DEFAULT_GROUP}))

    @classmethod
    def from_relationship(cls, relationship) -> "Association":
        """
        :param relationship: sqlalchemy.orm.RelationshipProperty
        :return: Association
        """
        info = relationship.info or {}
        return cls(relationship.key, relationship.mapper.class_, many=bool(relationship.uselist), groups=info.get("groups", ()))

    def get(self, entity: Any) -> Any:
        return self.getter(entity)

    def set(self, entity: Any, value: Any) -> None:
        self.setter(entity, value)


@dataclass(frozen=True)
class EntitySchema:
    """
    Statically declared description of an entity type
    """

    name: str
    model: type
    identifiers: Tuple[str, ...]
    fields: Mapping[str, Field]
    associations: Mapping[str, Association] = field(default_factory=dict)
    validators: Tuple[Callable[[Any], Any], ...] = ()
    allow_client_generated_ids: bool = False
    pk_delimiter: str = "_"

    def __post_init__(self) -> None:
        object.__setattr__(self, "identifiers", tuple(self.identifiers))
        object.__setattr__(self, "validators", tuple(self.validators))
        missing = [name for name in self.identifiers if name not in self.fields]
        if missing:
            raise ValueError(f"Identifiers {missing} of {self.name} are not declared as fields")

    @classmethod
    def from_model(cls, model: type, name: Optional[str] = None) -> "EntitySchema":
        """
        Create the schema from the SQLAlchemy mapper of `model`

        The model class attributes `exclude_attrs`, `exclude_rels`, `allow_client_generated_ids`
        and `__entity_validators__` customize the schema
        """
        try:
            mapper = sqla_inspect(model)
        except NoInspectionAvailable:
            raise UnknownEntityError(f"{model} is not a mapped class") from None

        exclude_attrs = getattr(model, "exclude_attrs", [])
        exclude_rels = getattr(model, "exclude_rels", [])
        identifiers = tuple(mapper.get_property_by_column(column).key for column in mapper.primary_key)

        fields = {}
        for prop in mapper.column_attrs:
            if prop.key.startswith("_"):
                continue
            if prop.key in exclude_attrs and prop.key not in identifiers:
                continue
            fields[prop.key] = Field.from_column(prop.key, prop.columns[0])

        associations = {}
        for rel in mapper.relationships:
            if rel.key in exclude_rels or rel.key.startswith("_"):
                continue
            associations[rel.key] = Association.from_relationship(rel)

        schema = cls(
            name or model.__name__,
            model,
            identifiers,
            fields,
            associations,
            validators=getattr(model, "__entity_validators__", ()),
            allow_client_generated_ids=bool(getattr(model, "allow_client_generated_ids", False)),
            pk_delimiter=getattr(model, "_s_pk_delimiter", "_"),
        )
        sqlafill.log.debug(f"Schema {schema.name}: identifiers {identifiers}, fields {list(fields)}, associations {list(associations)}")
        return schema

    def instantiate(self) -> Any:
        """
        :return: new, empty instance of the entity type
        """
        return self.model()

    def extract_identity(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Retrieve the identifier values present in `data`, parsed with the identifier field types
        :param data: payload
        :return: identifier name => value dict, only holds the identifiers found in `data`
        """
        result = {}
        for name in self.identifiers:
            if name not in data:
                continue
            value = data[name]
            if value is None:
                continue
            try:
                result[name] = self.fields[name].parse(value)
            except (ValueError, TypeError) as exc:
                raise InvalidPayloadError(f"Invalid identifier {self.name}.{name}: {value!r}") from exc
        return result

    def identity_of(self, entity: Any) -> Dict[str, Any]:
        """
        :param entity: instance of the entity type
        :return: identifier name => value dict
        """
        return {name: self.fields[name].get(entity) for name in self.identifiers}

    def parse_object_id(self, object_id: str) -> Dict[str, Any]:
        """
        Convert an url object id to the identity dict
        in case the PK is composite it consists of PKs joined by `pk_delimiter`
        """
        if len(self.identifiers) == 1:
            values = [object_id]
        else:
            values = str(object_id).split(self.pk_delimiter)
        if len(values) != len(self.identifiers):
            raise InvalidPayloadError(f"PK values ({values}) do not match identifiers ({self.identifiers})")
        return self.extract_identity(dict(zip(self.identifiers, values)))


class EntityRegistry:
    """
    Entity metadata provider: type => `EntitySchema`
    Types can be looked up by model class or by name.
    Association targets that are mapped classes are registered on first use.
    """

    def __init__(self, session=None) -> None:
        self._session = session
        self._schemas: Dict[Union[type, str], EntitySchema] = {}

    @property
    def session(self):
        """
        :return: the session used to load instances, defaults to the Flask-SQLAlchemy session
        """
        if self._session is not None:
            return self._session
        return sqlafill.DB.session

    def register(self, entity: Union[type, EntitySchema], name: Optional[str] = None) -> EntitySchema:
        """
        :param entity: mapped class or explicit schema
        :param name: type name, defaults to the class name
        :return: the registered schema
        """
        schema = entity if isinstance(entity, EntitySchema) else EntitySchema.from_model(entity, name)
        self._schemas[schema.model] = schema
        self._schemas[schema.name] = schema
        sqlafill.log.info(f"Registered entity {schema.name}")
        return schema

    def get(self, entity_type: Union[type, str, EntitySchema]) -> EntitySchema:
        """
        :param entity_type: model class, type name or schema
        :return: EntitySchema
        """
        if isinstance(entity_type, EntitySchema):
            return entity_type
        schema = self._schemas.get(entity_type)
        if schema is not None:
            return schema
        if isinstance(entity_type, type):
            return self.register(entity_type)
        raise UnknownEntityError(f"No schema registered for {entity_type!r}")

    def __contains__(self, entity_type: Union[type, str]) -> bool:
        return entity_type in self._schemas

    def load(self, entity_type: Union[type, str, EntitySchema], identity: Mapping[str, Any]) -> Optional[Any]:
        """
        Load a persisted instance by identifier
        :param entity_type: type of the instance
        :param identity: identifier name => value dict
        :return: instance or None if not found
        """
        schema = self.get(entity_type)
        instance = self.session.query(schema.model).filter_by(**identity).one_or_none()
        if instance is None:
            sqlafill.log.debug(f"No {schema.name} found for {dict(identity)}")
        return instance
