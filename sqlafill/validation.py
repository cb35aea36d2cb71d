"""
    Entity validation: runs the marshmallow validators declared in the entity schemas
"""
from typing import Any, Dict, Iterable, Optional

from marshmallow import ValidationError
from marshmallow.validate import Validator as MarshmallowValidator

import sqlafill
from .metadata import EntitySchema

INVALID_MESSAGE = "This value is not valid."


class NotBlank(MarshmallowValidator):
    """Validator which fails for None, empty strings and empty collections.

    :param error: Error message to raise in case of a validation error.
    """

    default_message = "must not be blank"
    # the entity validator skips None values, unless the validator handles them
    accepts_none = True

    def __init__(self, *, error: Optional[str] = None) -> None:
        self.error = error or self.default_message

    def _repr_args(self) -> str:
        return ""

    def __call__(self, value: Any) -> Any:
        blank = value is None or (isinstance(value, str) and not value.strip())
        if not blank and isinstance(value, (list, tuple, dict, set)) and len(value) == 0:
            blank = True
        if blank:
            raise ValidationError(self.error)
        return value


class NotNull(MarshmallowValidator):
    """Validator which fails for None.

    :param error: Error message to raise in case of a validation error.
    """

    default_message = "must not be null"
    accepts_none = True

    def __init__(self, *, error: Optional[str] = None) -> None:
        self.error = error or self.default_message

    def _repr_args(self) -> str:
        return ""

    def __call__(self, value: Any) -> Any:
        if value is None:
            raise ValidationError(self.error)
        return value


def _messages(exc: ValidationError) -> Iterable[str]:
    """
    :param exc: marshmallow ValidationError
    :return: flat list of the error messages
    """
    messages = exc.messages
    if isinstance(messages, str):
        return [messages]
    if isinstance(messages, dict):
        return [str(msg) for msgs in messages.values() for msg in (msgs if isinstance(msgs, list) else [msgs])]
    return [str(msg) for msg in messages]


class Validator:
    """
    Validate entities against the constraints declared in their schema
    """

    def __init__(self, registry) -> None:
        self.registry = registry

    def validate(self, entity: Any, schema: Optional[EntitySchema] = None) -> Dict[str, str]:
        """
        :param entity: populated entity
        :param schema: schema of the entity, looked up in the registry if omitted
        :return: property path => message dict; the last message wins if a path has multiple violations
        """
        if schema is None:
            schema = self.registry.get(type(entity))

        violations = []
        for field in schema.fields.values():
            if not field.validators:
                continue
            value = field.get(entity)
            for validator in field.validators:
                if value is None and not getattr(validator, "accepts_none", False):
                    continue
                try:
                    if validator(value) is False:
                        # plain functions may return False instead of raising
                        violations.append((field.name, INVALID_MESSAGE))
                except ValidationError as exc:
                    violations += [(field.name, message) for message in _messages(exc)]

        for validator in schema.validators:
            try:
                validator(entity)
            except ValidationError as exc:
                violations += [(exc.field_name, message) for message in _messages(exc)]

        result = {}
        for path, message in violations:
            result[path] = message
        if result:
            sqlafill.log.debug(f"{schema.name} violations: {result}")
        return result
