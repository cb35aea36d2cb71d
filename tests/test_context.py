import dataclasses

import pytest

from sqlafill import EntityContext

from conftest import create_app


def test_defaults() -> None:
    context = EntityContext()
    assert context.throw_exception_on_error is False
    assert dict(context.relations) == {}
    assert context.disabled_relations == frozenset()
    assert context.relation_fields("books") == ("books",)
    assert not context.has_relation_field("books")


def test_relations_are_normalized() -> None:
    context = EntityContext(relations={"books": "favourite_books", "address": ["billing", "shipping"]}, disabled_relations=["owner"])
    assert context.relation_fields("books") == ("favourite_books",)
    assert context.relation_fields("address") == ("billing", "shipping")
    assert context.has_relation_field("address")
    assert context.is_disabled("owner")
    assert not context.is_disabled("books")


def test_context_is_immutable() -> None:
    context = EntityContext(relations={"books": ["a"]})
    with pytest.raises(dataclasses.FrozenInstanceError):
        context.throw_exception_on_error = True
    with pytest.raises(TypeError):
        context.relations["books"] = ("b",)


def test_with_overrides() -> None:
    context = EntityContext()
    strict = context.with_overrides(throw_exception_on_error=True, unknown=1)
    assert strict is not context
    assert strict.throw_exception_on_error is True
    assert context.throw_exception_on_error is False
    assert context.with_overrides(unknown=1) is context


def test_from_config() -> None:
    app = create_app(THROW_EXCEPTION_ON_ERROR=True, RELATIONS={"books": ["favourite_books"]}, DISABLED_RELATIONS=["address"], MAX_FILL_DEPTH=3)
    with app.app_context():
        context = EntityContext.from_config()
    assert context == EntityContext(True, {"books": ("favourite_books",)}, frozenset(["address"]), 3)


def test_from_config_defaults() -> None:
    context = EntityContext.from_config()
    assert context == EntityContext()
