# serializer.py: group based serialization of entities
#
# pylint: disable=line-too-long
#
"""
Entities are serialized with marshmallow schemas that are generated from the entity schemas.
Only the fields and relationships tagged with one of the requested groups are serialized:

    serializer.to_array(user, ["public"])  # => {"id": 1, "email": "a@b.com", "address": {"zip": "12345"}}

Untagged fields and relationships belong to the "Default" group.
"""
import datetime
import decimal
import enum
import uuid
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Iterable, Tuple, Union

from marshmallow import Schema, fields
from sqlalchemy.orm import Query

import sqlafill
from .metadata import EntitySchema

#
# Map python types to marshmallow fields
# Enums are serialized by value, other types that are missing from the table as strings
# Values of custom column types (without python_type) are serialized as is
#
PYTHON_TYPE_FIELDS = {
    int: fields.Integer,
    str: fields.String,
    float: fields.Float,
    bool: fields.Boolean,
    decimal.Decimal: fields.Float,
    datetime.datetime: fields.DateTime,
    datetime.date: fields.Date,
    datetime.time: fields.Time,
    datetime.timedelta: fields.TimeDelta,
    uuid.UUID: fields.UUID,
    dict: fields.Dict,
    list: fields.List,
}


def _field_for(python_type) -> fields.Field:
    if python_type is None:
        return fields.Raw()
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return fields.Enum(python_type, by_value=True)
    field_class = PYTHON_TYPE_FIELDS.get(python_type, fields.String)
    if field_class is fields.List:
        return fields.List(fields.Raw())
    return field_class()


class Serializer:
    """
    Convert entities to plain dicts and lists that can be json encoded
    :param registry: EntityRegistry
    :param serialize_null: whether fields with a None value are emitted
    """

    def __init__(self, registry, serialize_null: bool = True) -> None:
        self.registry = registry
        self.serialize_null = serialize_null
        self._schema_classes: Dict[Tuple[str, FrozenSet[str]], type] = {}

    def to_array(self, data: Any, groups: Union[str, Iterable[str]]) -> Any:
        """
        Get the array representation of entity(ies)
        :param data: entity, list/query of entities or a dict containing entities
        :param groups: serialization group names
        :return: dict, list or the unchanged value
        """
        groups = _as_groups(groups)
        if isinstance(data, Mapping):
            return {key: self.to_array(value, groups) for key, value in data.items()}
        if isinstance(data, (list, tuple, set, frozenset, Query)):
            return [self.to_array(item, groups) for item in data]
        if type(data) not in self.registry and not _is_mapped(data):
            return data

        schema = self.registry.get(type(data))
        result = self.schema_class(schema, groups)().dump(data)
        if not self.serialize_null:
            result = _strip_null(result)
        return result

    def schema_class(self, schema: EntitySchema, groups: FrozenSet[str]) -> type:
        """
        Create (or get the cached) marshmallow schema class for `schema` with the fields in `groups`
        """
        key = (schema.name, groups)
        schema_class = self._schema_classes.get(key)
        if schema_class is not None:
            return schema_class

        declared = {}
        for name, field in schema.fields.items():
            if field.groups & groups:
                declared[name] = _field_for(field.python_type)

        for name, association in schema.associations.items():
            if not association.groups & groups:
                continue
            target = self.registry.get(association.target)
            # the nested schema is resolved lazily, relationships may be circular
            declared[name] = fields.Nested(self._nested(target, groups), many=association.many, allow_none=True)

        schema_class = Schema.from_dict(declared, name=f"{schema.name}Schema")
        self._schema_classes[key] = schema_class
        sqlafill.log.debug(f"Created serialization schema for {schema.name}, groups {sorted(groups)}: {list(declared)}")
        return schema_class

    def _nested(self, target: EntitySchema, groups: FrozenSet[str]):
        def nested_schema():
            return self.schema_class(target, groups)()

        return nested_schema


def _as_groups(groups: Union[str, Iterable[str]]) -> FrozenSet[str]:
    if isinstance(groups, str):
        return frozenset([groups])
    return frozenset(groups)


def _is_mapped(data: Any) -> bool:
    return hasattr(type(data), "__mapper__")


def _strip_null(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _strip_null(value) for key, value in data.items() if value is not None}
    if isinstance(data, list):
        return [_strip_null(item) for item in data]
    return data
