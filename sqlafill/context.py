"""Entity context: the configuration shared by one fill invocation tree.

The context tells the configurator
- whether a non-empty error tree aborts the save (``throw_exception_on_error``)
- which payload keys populate a relationship (``relations``), e.g.
  ``{"addresses": ["billing_address", "shipping_address"]}`` fills the
  ``addresses`` relationship from both payload keys
- which relationships are never touched (``disabled_relations``)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, Mapping, Tuple, Union

from .config import get_config


@dataclass(frozen=True)
class EntityContext:
    """Configuration for the entity configurator.

    All fields are immutable, a context may be shared between requests.
    """

    throw_exception_on_error: bool = False
    relations: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    disabled_relations: FrozenSet[str] = frozenset()
    max_depth: int = 32

    def __post_init__(self) -> None:
        relations = {name: _as_tuple(fields) for name, fields in dict(self.relations or {}).items()}
        object.__setattr__(self, "relations", MappingProxyType(relations))
        object.__setattr__(self, "disabled_relations", frozenset(self.disabled_relations or ()))

    @classmethod
    def from_config(cls) -> "EntityContext":
        """Create a context from the application configuration."""
        return cls(
            throw_exception_on_error=bool(get_config("THROW_EXCEPTION_ON_ERROR")),
            relations=get_config("RELATIONS") or {},
            disabled_relations=get_config("DISABLED_RELATIONS") or (),
            max_depth=int(get_config("MAX_FILL_DEPTH")),
        )

    def with_overrides(self, **overrides: Any) -> "EntityContext":
        """Return a new context where known fields are replaced by ``overrides``."""
        valid = {k: v for k, v in overrides.items() if k in self.__dataclass_fields__}
        if not valid:
            return self
        return replace(self, **valid)

    def relation_fields(self, relation_name: str) -> Tuple[str, ...]:
        """
        :param relation_name: relationship name
        :return: the payload keys used to populate the relationship
        """
        return self.relations.get(relation_name, (relation_name,))

    def has_relation_field(self, relation_name: str) -> bool:
        return relation_name in self.relations

    def is_disabled(self, relation_name: str) -> bool:
        return relation_name in self.disabled_relations


def _as_tuple(fields: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    if isinstance(fields, str):
        return (fields,)
    return tuple(fields)
