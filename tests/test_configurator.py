import pytest

from sqlafill import FillMode, InvalidPayloadError, NotFoundError, UnknownEntityError, ValidationFailedError
from sqlafill.validation import INVALID_MESSAGE

from conftest import Address, Book, Tag, TagKind, User, db


def _count(model) -> int:
    return db.session.query(model).count()


def _add(*instances):
    db.session.add_all(instances)
    db.session.commit()
    return instances


@pytest.fixture
def user(configurator) -> User:
    configurator.create({"email": "a@b.com", "name": "A", "address": {"zip": "12345", "city": "Gent"}}, User)
    return configurator.get_entity()


def test_update_requires_identifiers(configurator) -> None:
    with pytest.raises(InvalidPayloadError):
        configurator.update({"email": "a@b.com"}, User)
    assert _count(User) == 0
    assert configurator.get_entity() is None


def test_update_requires_nested_identifiers(configurator, user) -> None:
    with pytest.raises(InvalidPayloadError):
        configurator.update({"id": user.id, "email": "x@y.com", "books": [{"title": "A"}]}, User)
    assert db.session.get(User, user.id).email == "a@b.com"
    assert _count(Book) == 0


def test_save_creates_root_entity(configurator) -> None:
    errors = configurator.save({"email": "a@b.com", "name": "A", "age": "42"}, User)
    assert errors == {}
    user = configurator.get_entity()
    assert user.id is not None
    assert (user.email, user.name, user.age) == ("a@b.com", "A", 42)
    assert _count(User) == 1


def test_partial_update_is_idempotent(configurator, user) -> None:
    payload = {"id": user.id, "name": "B"}
    for _ in range(2):
        assert configurator.save(payload, User) == {}
        assert configurator.get_entity() is user

    assert (user.email, user.name) == ("a@b.com", "B")
    assert _count(User) == 1


def test_payload_is_not_mutated(configurator, user) -> None:
    payload = {"id": user.id, "name": "B", "address": {"city": "Brussel"}}
    configurator.save(payload, User)
    assert payload == {"id": user.id, "name": "B", "address": {"city": "Brussel"}}


def test_absent_associations_are_untouched(configurator, user) -> None:
    (book,) = _add(Book(title="A", owner=user))
    address = user.address

    configurator.save({"id": user.id, "name": "B"}, User)

    assert user.address is address
    assert user.books == [book]


def test_tomany_accumulates(configurator, user) -> None:
    book_a, book_b = _add(Book(title="A"), Book(title="B"))

    configurator.save({"id": user.id, "books": [{"id": book_a.id}]}, User)
    configurator.save({"id": user.id, "books": [{"id": book_b.id}]}, User)
    configurator.save({"id": user.id, "books": {"id": book_a.id, "title": "A2"}}, User)

    assert sorted(book.title for book in user.books) == ["A2", "B"]
    assert _count(Book) == 2


def test_tomany_creates_members(configurator, user) -> None:
    errors = configurator.save({"id": user.id, "books": [{"title": "A"}, {"title": "B"}]}, User)
    assert errors == {}
    assert sorted(book.title for book in user.books) == ["A", "B"]
    assert all(book.owner is user for book in user.books)


def test_nested_error_tree(configurator) -> None:
    errors = configurator.save({"email": None, "address": {"zip": "bad"}}, User)
    assert errors == {"email": "must not be blank", "address": {"zip": "invalid format"}}


def test_tomany_error_tree_uses_list_index(configurator) -> None:
    errors = configurator.save({"email": "a@b.com", "books": [{"title": "A"}, {"title": " "}]}, User)
    assert errors == {"books": {"1": {"title": "must not be blank"}}}

    errors = configurator.save({"email": "a@b.com", "books": {"title": ""}}, User)
    assert errors == {"books": {"title": "must not be blank"}}


def test_invalid_value(configurator) -> None:
    errors = configurator.save({"email": "a@b.com", "age": "abc"}, User)
    assert errors == {"age": INVALID_MESSAGE}
    assert configurator.get_entity().age is None


def test_missing_instance_raises_not_found(configurator) -> None:
    with pytest.raises(NotFoundError):
        configurator.save({"id": 5, "email": "x@y.com"}, User)
    assert _count(User) == 0


def test_missing_nested_instance_raises_not_found(configurator, user) -> None:
    with pytest.raises(NotFoundError):
        configurator.save({"id": user.id, "address": {"id": 999}}, User)


def test_create_ignores_identifiers(configurator) -> None:
    configurator.create({"id": 42, "email": "a@b.com"}, User)
    assert configurator.get_entity().id != 42
    assert db.session.get(User, 42) is None


def test_create_client_generated_ids(configurator) -> None:
    errors = configurator.create({"namespace": "ns", "name": "tag", "description": "d", "kind": "author"}, Tag)
    assert errors == {}
    tag = db.session.get(Tag, ("ns", "tag"))
    assert (tag.description, tag.kind) == ("d", TagKind.AUTHOR)


def test_incomplete_composite_identifier(configurator) -> None:
    with pytest.raises(InvalidPayloadError):
        configurator.save({"namespace": "ns", "description": "d"}, Tag)


def test_create_links_existing_children(configurator) -> None:
    (address,) = _add(Address(zip="12345"))
    configurator.create({"email": "a@b.com", "address": {"id": address.id}}, User)
    assert configurator.get_entity().address is address
    assert _count(Address) == 1


def test_toone_reuses_linked_entity(configurator, user) -> None:
    address = user.address
    configurator.save({"id": user.id, "address": {"city": "Brussel"}}, User)
    assert user.address is address
    assert address.city == "Brussel"
    assert _count(Address) == 1


def test_toone_relink_and_clear(configurator, user) -> None:
    old_address = user.address
    (new_address,) = _add(Address(zip="54321"))

    configurator.save({"id": user.id, "address": {"id": new_address.id}}, User)
    assert user.address is new_address

    configurator.save({"id": user.id, "address": None}, User)
    assert user.address is None
    assert db.session.get(Address, old_address.id) is not None


def test_disabled_relations(fill, user) -> None:
    configurator = fill.configurator(fill.context.with_overrides(disabled_relations={"address", "books"}))
    address = user.address
    configurator.save({"id": user.id, "address": None, "books": [{"title": "A"}]}, User)
    assert user.address is address
    assert user.books == []


def test_relation_map(fill) -> None:
    configurator = fill.configurator(fill.context.with_overrides(relations={"books": ["favourite_books", "other_books"]}))
    errors = configurator.save({"email": "a@b.com", "favourite_books": [{"title": "A"}], "other_books": {"title": "B"}}, User)
    assert errors == {}
    assert sorted(book.title for book in configurator.get_entity().books) == ["A", "B"]


def test_relation_map_fills_single_entity_on_create(fill) -> None:
    configurator = fill.configurator(fill.context.with_overrides(relations={"address": ["billing", "shipping"]}))
    errors = configurator.create({"email": "a@b.com", "billing": {"zip": "11111", "city": "Bill"}, "shipping": {"city": "Ship"}}, User)
    assert errors == {}

    address = configurator.get_entity().address
    assert (address.zip, address.city) == ("11111", "Ship")
    assert _count(Address) == 1


def test_relation_map_fills_single_entity_on_save(fill, user) -> None:
    configurator = fill.configurator(fill.context.with_overrides(relations={"address": ["billing", "shipping"]}))
    address = user.address
    configurator.save({"id": user.id, "billing": {"zip": "11111"}, "shipping": {"city": "Ship"}}, User)
    assert user.address is address
    assert (address.zip, address.city) == ("11111", "Ship")


def test_relation_map_merges_error_trees(fill) -> None:
    configurator = fill.configurator(fill.context.with_overrides(relations={"books": ("favourite_books", "other_books")}))
    errors = configurator.save({"email": "a@b.com", "favourite_books": [{"title": ""}], "other_books": [{"title": "B"}, {"title": ""}]}, User)
    assert errors == {"books": {"0": {"title": "must not be blank"}, "1": {"title": "must not be blank"}}}


def test_tomany_null_adds_nothing(configurator, user) -> None:
    (book,) = _add(Book(title="A", owner=user))
    assert configurator.save({"id": user.id, "books": None}, User) == {}
    assert user.books == [book]

    assert configurator.save({"email": "c@d.com", "books": None}, User) == {}
    assert configurator.get_entity().books == []


def test_throw_exception_on_error(fill, user) -> None:
    configurator = fill.configurator(fill.context.with_overrides(throw_exception_on_error=True))

    with pytest.raises(ValidationFailedError) as exc_info:
        configurator.save({"id": user.id, "email": "", "address": {"zip": "1"}}, User)
    assert exc_info.value.errors == {"email": "must not be blank", "address": {"zip": "invalid format"}}
    assert exc_info.value.status_code == 422

    user = db.session.get(User, user.id)
    assert user.email == "a@b.com"
    assert user.address.zip == "12345"

    with pytest.raises(ValidationFailedError):
        configurator.create({"email": " "}, User)
    assert _count(User) == 1


def test_max_depth(fill) -> None:
    configurator = fill.configurator(fill.context.with_overrides(max_depth=0))
    with pytest.raises(InvalidPayloadError):
        configurator.save({"email": "a@b.com", "address": {"zip": "12345"}}, User)
    assert _count(Address) == 0


@pytest.mark.parametrize(
    "payload",
    [
        ["a@b.com"],
        {"email": "a@b.com", "address": "12345"},
        {"email": "a@b.com", "books": 5},
        {"email": "a@b.com", "books": ["A"]},
        {"id": "abc"},
    ],
)
def test_invalid_payload_shapes(configurator, payload) -> None:
    with pytest.raises(InvalidPayloadError):
        configurator.save(payload, User)
    assert _count(User) == 0


def test_unknown_entity_type(configurator) -> None:
    with pytest.raises(UnknownEntityError):
        configurator.save({}, "Unknown")


def test_fill_without_saving(configurator, user) -> None:
    errors = configurator.fill({"id": user.id, "name": "B"}, User, FillMode.STRICT)
    assert errors == {}
    assert user.name == "B"
    db.session.rollback()
    assert db.session.get(User, user.id).name == "A"


def test_entity_is_registered_by_name(configurator, fill, user) -> None:
    fill.register(User)
    configurator.save({"id": user.id, "name": "C"}, "User")
    assert user.name == "C"
