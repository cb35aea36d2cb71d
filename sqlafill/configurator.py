# configurator.py: fill SQLAlchemy entity graphs from (json) payloads
#
# pylint: disable=logging-format-interpolation,line-too-long
#
"""
The EntityConfigurator maps a nested payload onto an entity and its related entities:

    configurator = EntityConfigurator(registry, Validator(registry), EntityContext(), PersistenceGateway())
    errors = configurator.create({"email": "a@b.c", "address": {"zip": "12345"}}, User)
    user = configurator.get_entity()

Scalar fields that are not in the payload are left untouched, relationships are only
touched when the payload (or the context relation map) refers to them.
To-many relationships accumulate: new members are appended, existing members are never removed.

The result is an error tree, e.g.

    {"email": "must not be blank", "address": {"zip": "invalid format"}}
"""
from enum import Enum
from collections.abc import Mapping
from typing import Any, Dict, Optional

import sqlafill
from .context import EntityContext
from .errors import ApiError, InvalidPayloadError, NotFoundError, ValidationFailedError
from .fill_init import dict_merge
from .gateway import PersistenceGateway
from .metadata import Association, EntityRegistry, EntitySchema
from .validation import INVALID_MESSAGE, Validator

ErrorTree = Dict[str, Any]


class FillMode(Enum):
    """
    STRICT: identifiers are required, existing instances are updated
    UPDATE: existing instances are updated when identifiers are supplied, new instances are created otherwise
    CREATE: a new root instance is created
    """

    STRICT = "strict"
    UPDATE = "update"
    CREATE = "create"


class EntityConfigurator:
    """
    Fill, validate and save entities
    An instance holds the root entity of the last call, so it should not be shared between requests
    """

    def __init__(
        self,
        registry: EntityRegistry,
        validator: Validator,
        context: Optional[EntityContext] = None,
        gateway: Optional[PersistenceGateway] = None,
    ) -> None:
        self.registry = registry
        self.validator = validator
        self.entity_context = context if context is not None else EntityContext()
        self.gateway = gateway if gateway is not None else PersistenceGateway(registry.session)
        self.entity = None

    def get_entity(self) -> Any:
        """
        :return: the root entity of the last save/create/update call
        """
        return self.entity

    def get_entity_context(self) -> EntityContext:
        return self.entity_context

    def save(self, data: Mapping, entity_type) -> ErrorTree:
        """
        Fill and save an entity, the entity is looked up when the payload contains its identifiers
        :param data: de-serialized payload
        :param entity_type: model class or registered type name
        :return: error tree
        """
        return self.handle(data, entity_type, FillMode.UPDATE)

    def create(self, data: Mapping, entity_type) -> ErrorTree:
        """
        Fill and save a new entity
        :param data: de-serialized payload
        :param entity_type: model class or registered type name
        :return: error tree
        """
        return self.handle(data, entity_type, FillMode.CREATE)

    def update(self, data: Mapping, entity_type) -> ErrorTree:
        """
        Fill and save an existing entity, the payload must contain the identifiers (also for nested entities)
        :param data: de-serialized payload
        :param entity_type: model class or registered type name
        :return: error tree
        """
        return self.handle(data, entity_type, FillMode.STRICT)

    def handle(self, data: Mapping, entity_type, mode: FillMode) -> ErrorTree:
        """
        Fill the entity, then persist it unless the context requires an exception for a non-empty error tree
        """
        self.entity = None
        schema = self.registry.get(entity_type)

        try:
            with self.gateway.no_autoflush():
                self.entity = self.resolve_entity(data, schema, mode)
                errors = self.fill(data, schema, mode, entity=self.entity)
        except ApiError:
            # leave the store unmodified
            self.gateway.rollback()
            raise

        if errors and self.entity_context.throw_exception_on_error:
            self.gateway.rollback()
            raise ValidationFailedError(errors)

        self.gateway.persist(self.entity)
        self.gateway.commit()
        sqlafill.log.info(f"Saved {schema.name} {schema.identity_of(self.entity)}")

        return errors

    def resolve_entity(self, data: Mapping, entity_type, mode: FillMode) -> Any:
        """
        Find or create the root entity for `data`
        :param data: payload
        :param entity_type: model class, type name or schema
        :param mode: FillMode
        :return: entity instance
        """
        schema = self.registry.get(entity_type)
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(f"Invalid {schema.name} payload: {data!r}")

        identity = self._extract_identity(schema, data, mode, partial=mode is FillMode.CREATE)

        if mode is FillMode.CREATE:
            entity = schema.instantiate()
            if identity and schema.allow_client_generated_ids:
                for name, value in identity.items():
                    schema.fields[name].set(entity, value)
            elif identity:
                sqlafill.log.warning(f"Client generated ids are not allowed for {schema.name}, ignoring {identity}")
            return entity

        if not identity:
            return schema.instantiate()

        return self._load(schema, identity)

    def fill(self, data: Mapping, entity_type, mode: FillMode = FillMode.UPDATE, entity: Any = None, depth: int = 0) -> ErrorTree:
        """
        Fill an entity with the payload data
        :param data: payload
        :param entity_type: model class, type name or schema
        :param mode: FillMode
        :param entity: the instance to fill, resolved from the payload if omitted
        :param depth: recursion depth
        :return: error tree of the entity and its related entities
        """
        schema = self.registry.get(entity_type)
        if depth > self.entity_context.max_depth:
            raise InvalidPayloadError(f"Payload nesting exceeds {self.entity_context.max_depth} levels")
        if entity is None:
            entity = self.resolve_entity(data, schema, mode)

        # identifiers are never changed by filling
        data = {key: value for key, value in data.items() if key not in schema.identifiers}
        errors: ErrorTree = {}

        for name, field in schema.fields.items():
            if name not in data:
                continue
            try:
                value = field.parse(data[name])
            except (ValueError, TypeError) as exc:
                sqlafill.log.debug(f"Invalid value for {schema.name}.{name}: {exc}")
                errors[name] = INVALID_MESSAGE
                continue
            field.set(entity, value)

        for name, association in schema.associations.items():
            if self.entity_context.is_disabled(name):
                continue
            if not data or (name not in data and not self.entity_context.has_relation_field(name)):
                continue
            for data_field_name in self.entity_context.relation_fields(name):
                if data_field_name not in data:
                    continue
                child_errors = self._fill_association(entity, association, data[data_field_name], mode, depth)
                if child_errors:
                    dict_merge(errors.setdefault(name, {}), child_errors)

        errors.update(self.validator.validate(entity, schema))
        return errors

    def _fill_association(self, entity: Any, association: Association, value: Any, mode: FillMode, depth: int) -> ErrorTree:
        """
        Link the related entities referenced in `value` and fill them
        :return: error tree of the related entities
        """
        target = self.registry.get(association.target)
        if association.many:
            return self._fill_collection(entity, association, target, value, mode, depth)

        if value is None:
            association.set(entity, None)
            return {}
        if not isinstance(value, Mapping):
            raise InvalidPayloadError(f"Invalid {association.name} payload: {value!r}")

        current = association.get(entity)
        child = self._resolve_child(target, value, mode, current)
        if child is not current:
            association.set(entity, child)
        return self.fill(value, target, mode, entity=child, depth=depth + 1)

    def _fill_collection(self, entity: Any, association: Association, target: EntitySchema, value: Any, mode: FillMode, depth: int) -> ErrorTree:
        """
        Add the related entities in `value` (a dict or a list of dicts) to the to-many relationship
        """
        if value is None:
            # nothing to add, existing members are kept
            return {}
        if isinstance(value, Mapping):
            items = [value]
        elif isinstance(value, (list, tuple)):
            items = value
        else:
            raise InvalidPayloadError(f"Invalid {association.name} payload: {value!r}")

        collection = association.get(entity)
        if collection is None:
            association.set(entity, [])
            collection = association.get(entity)

        errors: ErrorTree = {}
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                raise InvalidPayloadError(f"Invalid {association.name} item: {item!r}")
            child = self._find_member(target, item, collection)
            if child is None:
                child = self._resolve_child(target, item, mode, None)
                _add_member(collection, child)
            child_errors = self.fill(item, target, mode, entity=child, depth=depth + 1)
            if not child_errors:
                continue
            if isinstance(value, Mapping):
                errors = child_errors
            else:
                errors[str(index)] = child_errors
        return errors

    def _find_member(self, target: EntitySchema, data: Mapping, collection) -> Optional[Any]:
        """
        :return: the member of `collection` that has the identifiers supplied in `data`
        """
        identity = target.extract_identity(data)
        if not identity or len(identity) != len(target.identifiers):
            return None
        for member in collection:
            if target.identity_of(member) == identity:
                return member
        return None

    def _resolve_child(self, target: EntitySchema, data: Mapping, mode: FillMode, current: Any) -> Any:
        """
        Find the related entity referenced by `data`
        :param current: the entity currently linked by the (to-one) relationship
        :return: the current entity if it has the same identity or no identity is supplied, a loaded or a new entity otherwise
        """
        identity = self._extract_identity(target, data, mode)
        if identity:
            if current is not None and target.identity_of(current) == identity:
                return current
            return self._load(target, identity)
        if current is not None:
            # fragments without identifiers fill the linked entity, e.g. several relation map keys
            return current
        return target.instantiate()

    def _extract_identity(self, schema: EntitySchema, data: Mapping, mode: FillMode, partial: bool = False) -> Dict[str, Any]:
        """
        :param partial: accept a subset of the identifiers (the identifiers of a new root entity are ignored)
        """
        identity = schema.extract_identity(data)
        if mode is FillMode.STRICT:
            missing = [name for name in schema.identifiers if name not in identity]
            if missing:
                raise InvalidPayloadError(f"Missing identifier in {schema.name} data: {', '.join(missing)}")
        elif identity and len(identity) != len(schema.identifiers) and not partial:
            raise InvalidPayloadError(f"Incomplete identifier in {schema.name} data: {identity}")
        return identity

    def _load(self, schema: EntitySchema, identity: Dict[str, Any]) -> Any:
        entity = self.registry.load(schema, identity)
        if entity is None:
            raise NotFoundError(f'Invalid "{schema.name}" ID "{identity}"')
        return entity


def _add_member(collection, member: Any) -> None:
    """
    Add `member` to a relationship collection (list, set or dynamic relationship)
    """
    if member in collection:
        return
    if hasattr(collection, "append"):
        collection.append(member)
    else:
        collection.add(member)
