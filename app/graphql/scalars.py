"""Custom GraphQL scalars."""

from datetime import datetime, timedelta, timezone
from typing import Any, NewType

import strawberry
from graphql import IntValueNode


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _from_epoch_ms(value: int | float) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def serialize_date(value: Any) -> Any:
    """Value sent to the client: epoch milliseconds.

    Sub-millisecond precision is truncated, so a stored datetime with
    microseconds comes back from parse_date_value at millisecond precision.
    Strings are passed through unchanged.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - EPOCH) // timedelta(milliseconds=1)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    raise ValueError(f"Date cannot represent value: {value!r}")


def parse_date_value(value: Any) -> datetime:
    """Value from the client (variables)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_epoch_ms(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return _from_epoch_ms(int(text))
        except ValueError:
            pass
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Date cannot represent value: {value!r}")


def parse_date_literal(ast, _variables=None) -> datetime | None:
    """Inline literal: only integers are accepted, anything else is null."""
    if isinstance(ast, IntValueNode):
        # ast value is always in string format
        return _from_epoch_ms(int(ast.value))
    return None


Date = strawberry.scalar(
    NewType("Date", datetime),
    name="Date",
    description="Date custom scalar type",
    serialize=serialize_date,
    parse_value=parse_date_value,
    parse_literal=parse_date_literal,
)
