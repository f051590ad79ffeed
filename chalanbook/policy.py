"""Which role may do what, checked on the server for every CRUD call."""
import enum

from chalanbook.errors import Forbidden


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


_ALL = frozenset(Action)

POLICY = {
    "root": _ALL,
    "full": _ALL,
    "edit": _ALL,
    "add-only": frozenset({Action.READ, Action.CREATE}),
}


def is_allowed(role: str, action: Action) -> bool:
    return action in POLICY.get(role, frozenset())


def authorize(claims, action: Action):
    if not is_allowed(claims.role, action):
        raise Forbidden(f"Role '{claims.role}' may not {action.value}")
    return claims
