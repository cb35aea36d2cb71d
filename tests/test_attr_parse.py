import datetime
import decimal

import pytest
import sqlalchemy as sa

from sqlafill.attr_parse import parse_attr, parse_bool


def _column(column_type) -> sa.Column:
    return sa.Column("value", column_type)


@pytest.mark.parametrize(
    "column_type, value, expected",
    [
        (sa.Integer(), "5", 5),
        (sa.Integer(), 5.0, 5),
        (sa.String(), 5, "5"),
        (sa.Float(), "1.5", 1.5),
        (sa.Numeric(), "1.50", decimal.Decimal("1.50")),
        (sa.Boolean(), "false", False),
        (sa.Boolean(), 1, True),
        (sa.Date(), "2024-02-29", datetime.date(2024, 2, 29)),
        (sa.DateTime(), "2024-02-29T10:11:12", datetime.datetime(2024, 2, 29, 10, 11, 12)),
        (sa.DateTime(), "2024-02-29 10:11:12.5", datetime.datetime(2024, 2, 29, 10, 11, 12, 500000)),
        (sa.Time(), "10:11:12", datetime.time(10, 11, 12)),
        (sa.JSON(), {"a": [1]}, {"a": [1]}),
        (sa.Integer(), None, None),
    ],
)
def test_parse_attr(column_type, value, expected) -> None:
    assert parse_attr(_column(column_type), value) == expected


@pytest.mark.parametrize(
    "column_type, value",
    [
        (sa.Integer(), "abc"),
        (sa.Integer(), 1.5),
        (sa.Numeric(), "abc"),
        (sa.Boolean(), "maybe"),
        (sa.Date(), "29/02/2024"),
        (sa.String(), {"a": 1}),
    ],
)
def test_parse_attr_invalid(column_type, value) -> None:
    with pytest.raises(ValueError):
        parse_attr(_column(column_type), value)


def test_parse_bool() -> None:
    assert parse_bool(" Yes ") is True
    assert parse_bool("") is False
    with pytest.raises(ValueError):
        parse_bool(None)
