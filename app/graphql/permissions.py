"""Binds the field rule table to Strawberry permission classes."""

import logging
from typing import Any, ClassVar

from strawberry.permission import BasePermission
from strawberry.types import Info

from app.exceptions import AuthorizationError, ErrorCode
from app.permissions_config.permissions import get_field_rule
from app.permissions_config.rules import evaluate

logger = logging.getLogger(__name__)


class RuleGate(BasePermission):
    """Evaluates the access rule of one field before its resolver runs.

    Every rejection carries the same message; which sub-rule failed is
    only logged.
    """

    message = AuthorizationError().message
    error_extensions = {"code": ErrorCode.AUTH_PERMISSION_DENIED.value}
    field: ClassVar[str] = ""

    async def has_permission(self, source: Any, info: Info, **kwargs: Any) -> bool:
        rule = get_field_rule(self.field)
        accepted = await evaluate(rule, kwargs, info.context)
        if not accepted:
            user = info.context.user
            logger.info(f"Access to {self.field} denied by {rule} (user: {user.id if user else None})")
        return accepted


def gate(field: str) -> list[type[BasePermission]]:
    """Permission classes for a "Type.field" entry of FIELD_RULES."""
    get_field_rule(field)
    name = field.replace(".", "") + "Gate"
    return [type(name, (RuleGate,), {"field": field})]
