"""
RBAC data model - identifier kinds, role definitions and auth subjects.

Roles, permissions, resources and actions are plain strings tagged with
NewType so signatures say which kind they expect. Membership in the declared
sets is checked by the validator and the checker, not by these types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, NewType, Tuple, Union

Role = NewType("Role", str)
Permission = NewType("Permission", str)
Resource = NewType("Resource", str)
Action = NewType("Action", str)


class AuthType(str, Enum):
    """How the subject was authenticated upstream."""

    JWT = "jwt"
    API_KEY = "api_key"


@dataclass(frozen=True)
class RoleDefinition:
    """A named privilege tier. Higher level means more privilege."""

    name: Role
    level: int


@dataclass(frozen=True)
class PermissionMapping:
    """One pair of the permission <-> action bijection."""

    permission: Permission
    action: Action


@dataclass(frozen=True)
class APIKeyResourceScope:
    """Resources API-key subjects may touch at all."""

    allowed_resources: Tuple[Resource, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "allowed_resources", tuple(self.allowed_resources))


@dataclass(frozen=True)
class AuthSubject:
    """
    The caller of a single authorization query.

    JWT subjects carry a role, API-key subjects carry a set of permissions.
    `type` is normally an AuthType but any string is accepted so that
    unrecognised auth methods reach the checker and get denied there.
    """

    type: Union[AuthType, str]
    user_role: Role = Role("")
    permissions: Tuple[Permission, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if isinstance(self.permissions, str):
            raise TypeError("permissions must be a collection of strings, not a single string")
        object.__setattr__(self, "permissions", tuple(self.permissions))

    @classmethod
    def jwt(cls, role: str) -> "AuthSubject":
        return cls(type=AuthType.JWT, user_role=Role(role))

    @classmethod
    def api_key(cls, permissions: Iterable[str]) -> "AuthSubject":
        if isinstance(permissions, str):
            raise TypeError("permissions must be a collection of strings, not a single string")
        return cls(type=AuthType.API_KEY, permissions=tuple(Permission(p) for p in permissions))
