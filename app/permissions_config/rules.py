"""
Access rules.

A rule is either an Atomic predicate over (arguments, context) or an And of
two rules. ``evaluate`` walks the tree and stops at the first rejection.
Rules combine with ``&``::

    send_message_rule = is_authenticated & is_conversation_member
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

from app.services.membership import is_member

logger = logging.getLogger(__name__)

RulePredicate = Callable[[dict[str, Any], Any], Awaitable[bool]]


class _Composable:
    def __and__(self, other: Rule) -> And:
        return And(self, other)


@dataclass(frozen=True)
class Atomic(_Composable):
    name: str
    predicate: RulePredicate

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class And(_Composable):
    left: Rule
    right: Rule

    def __str__(self) -> str:
        return f"({self.left} AND {self.right})"


Rule = Union[Atomic, And]


async def evaluate(rule: Rule, arguments: dict[str, Any], context: Any) -> bool:
    """Return True if ``rule`` accepts the operation."""
    if isinstance(rule, And):
        return await evaluate(rule.left, arguments, context) and await evaluate(rule.right, arguments, context)
    if isinstance(rule, Atomic):
        accepted = await rule.predicate(arguments, context)
        if not accepted:
            logger.debug(f"Rule '{rule.name}' rejected")
        return accepted
    raise TypeError(f"Not a rule: {rule!r}")


def rule(name: str) -> Callable[[RulePredicate], Atomic]:
    """Decorator turning an async predicate into an Atomic rule."""

    def decorator(predicate: RulePredicate) -> Atomic:
        return Atomic(name=name, predicate=predicate)

    return decorator


def _parse_id(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@rule("Authenticated")
async def is_authenticated(arguments: dict[str, Any], context: Any) -> bool:
    return context.user is not None


@rule("ConversationMember")
async def is_conversation_member(arguments: dict[str, Any], context: Any) -> bool:
    if context.user is None:
        return False
    conversation_id = _parse_id(arguments.get("conversation_id"))
    if conversation_id is None:
        return False
    return await is_member(context.store, context.user.id, conversation_id)
