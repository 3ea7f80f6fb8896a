"""
RBAC Config - the policy definition and its validator.

A Config is the only input to the checker: declared roles, permissions,
resources and actions, the role -> resource -> actions capability matrix,
the permission <-> action mapping used for API keys, and an optional API-key
resource scope. Policies can be built in code or loaded from YAML files.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml

from rbac_engine.errors import RBACConfigError
from rbac_engine.types import (
    Action,
    APIKeyResourceScope,
    Permission,
    PermissionMapping,
    Resource,
    Role,
    RoleDefinition,
)
from rbac_engine.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Config:
    """Complete RBAC policy. Treat as read-only once validated."""

    roles: List[RoleDefinition] = field(default_factory=list)
    permissions: List[Permission] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    capabilities: Dict[Role, Dict[Resource, List[Action]]] = field(default_factory=dict)
    permission_to_action_map: List[PermissionMapping] = field(default_factory=list)
    api_key_scope: Optional[APIKeyResourceScope] = None

    def validate(self) -> None:
        """Raise RBACConfigError if the policy is not internally consistent."""
        validate_config(self)


def _check_unique(field_name: str, kind: str, values: Iterable[str], allow_empty: bool = False) -> set:
    seen = set()
    for value in values:
        if value in seen:
            raise RBACConfigError(field_name, f"duplicate {kind}: {value}", value)
        if not allow_empty and not value:
            raise RBACConfigError(field_name, f"{kind} must not be empty")
        seen.add(value)
    return seen


def validate_config(config: Config) -> None:
    """
    Validate the internal consistency of an RBAC configuration.

    Checks run in a fixed order and the first failure is raised:
    non-empty declarations, duplicate names, duplicate role levels, empty
    role names, then every cross-reference in capabilities, the
    permission/action mapping and the API-key scope.

    Args:
        config: The policy to check

    Raises:
        RBACConfigError: naming the offending field and value
    """
    for field_name in ("roles", "permissions", "resources", "actions"):
        if not getattr(config, field_name):
            raise RBACConfigError(field_name, "must not be empty")

    role_names = _check_unique("roles", "role name", (rd.name for rd in config.roles), allow_empty=True)
    permissions = _check_unique("permissions", "permission", config.permissions)
    resources = _check_unique("resources", "resource", config.resources)
    actions = _check_unique("actions", "action", config.actions)

    levels: Dict[int, Role] = {}
    for rd in config.roles:
        if isinstance(rd.level, bool) or not isinstance(rd.level, int):
            raise RBACConfigError("roles", f"level of role {rd.name} must be an integer", rd.level)
        if rd.level in levels:
            raise RBACConfigError(
                "roles",
                f"duplicate role level {rd.level} (roles {levels[rd.level]} and {rd.name})",
                rd.level,
            )
        levels[rd.level] = rd.name

    if "" in role_names:
        raise RBACConfigError("roles", "role name must not be empty")

    for role, role_resources in config.capabilities.items():
        if role not in role_names:
            raise RBACConfigError("capabilities", f"capability references unknown role: {role}", role)
        for resource, resource_actions in role_resources.items():
            if resource not in resources:
                raise RBACConfigError(
                    "capabilities",
                    f"capability for role {role} references unknown resource: {resource}",
                    resource,
                )
            for action in resource_actions:
                if action not in actions:
                    raise RBACConfigError(
                        "capabilities",
                        f"capability for role {role} on resource {resource} references unknown action: {action}",
                        action,
                    )

    mapped_permissions = set()
    mapped_actions = set()
    for pm in config.permission_to_action_map:
        if pm.permission not in permissions:
            raise RBACConfigError(
                "permission_to_action_map",
                f"permission mapping references unknown permission: {pm.permission}",
                pm.permission,
            )
        if pm.action not in actions:
            raise RBACConfigError(
                "permission_to_action_map",
                f"permission mapping references unknown action: {pm.action}",
                pm.action,
            )
        if pm.permission in mapped_permissions:
            raise RBACConfigError(
                "permission_to_action_map", f"duplicate permission in mapping: {pm.permission}", pm.permission
            )
        if pm.action in mapped_actions:
            raise RBACConfigError(
                "permission_to_action_map", f"duplicate action in mapping: {pm.action}", pm.action
            )
        mapped_permissions.add(pm.permission)
        mapped_actions.add(pm.action)

    if config.api_key_scope is not None:
        for resource in config.api_key_scope.allowed_resources:
            if resource not in resources:
                raise RBACConfigError(
                    "api_key_scope", f"API key scope references unknown resource: {resource}", resource
                )

    logger.debug("RBAC configuration validated successfully")


# ---------------------------------------------------------------------------
# Loading from plain data / YAML
# ---------------------------------------------------------------------------

def _as_list(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise RBACConfigError(key, f"expected a list, got {type(value).__name__}")
    return value


def _as_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise RBACConfigError(field_name, f"expected a mapping, got {type(value).__name__}")
    return value


def _identifier(value: Any, field_name: str) -> str:
    """Identifiers must be YAML strings; null, booleans and numbers are rejected."""
    if not isinstance(value, str):
        raise RBACConfigError(
            field_name, f"identifier must be a string, got {type(value).__name__}: {value!r}", value
        )
    return value


def _role_from_dict(item: Any) -> RoleDefinition:
    item = _as_mapping(item, "roles")
    if "name" not in item or "level" not in item:
        raise RBACConfigError("roles", f"role entries need 'name' and 'level': {dict(item)}")
    name = _identifier(item["name"], "roles")
    level = item["level"]
    if isinstance(level, bool) or not isinstance(level, int):
        raise RBACConfigError("roles", f"level of role {name} must be an integer", level)
    return RoleDefinition(name=Role(name), level=level)


def _mapping_from_dict(item: Any) -> PermissionMapping:
    item = _as_mapping(item, "permission_to_action_map")
    if "permission" not in item or "action" not in item:
        raise RBACConfigError(
            "permission_to_action_map", f"mapping entries need 'permission' and 'action': {dict(item)}"
        )
    return PermissionMapping(
        permission=Permission(_identifier(item["permission"], "permission_to_action_map")),
        action=Action(_identifier(item["action"], "permission_to_action_map")),
    )


def config_from_dict(data: Mapping[str, Any]) -> Config:
    """
    Build a Config from the nested mapping used by YAML policy files.

    Only the shape is checked here; call Config.validate() (or construct a
    checker) for the consistency rules.

    Raises:
        RBACConfigError: If a section has the wrong structure or an identifier is not a string
    """
    data = _as_mapping(data, "config")

    capabilities: Dict[Role, Dict[Resource, List[Action]]] = {}
    for role, role_resources in _as_mapping(data.get("capabilities"), "capabilities").items():
        role = Role(_identifier(role, "capabilities"))
        capabilities[role] = {}
        for resource, actions in _as_mapping(role_resources, "capabilities").items():
            resource = Resource(_identifier(resource, "capabilities"))
            if actions is None:
                actions = []
            if not isinstance(actions, list):
                raise RBACConfigError("capabilities", f"actions for {role}/{resource} must be a list")
            capabilities[role][resource] = [Action(_identifier(a, "capabilities")) for a in actions]

    api_key_scope = None
    if data.get("api_key_scope") is not None:
        scope = _as_mapping(data["api_key_scope"], "api_key_scope")
        api_key_scope = APIKeyResourceScope(
            allowed_resources=tuple(
                Resource(_identifier(r, "api_key_scope")) for r in _as_list(scope, "allowed_resources")
            )
        )

    return Config(
        roles=[_role_from_dict(item) for item in _as_list(data, "roles")],
        permissions=[Permission(_identifier(p, "permissions")) for p in _as_list(data, "permissions")],
        resources=[Resource(_identifier(r, "resources")) for r in _as_list(data, "resources")],
        actions=[Action(_identifier(a, "actions")) for a in _as_list(data, "actions")],
        capabilities=capabilities,
        permission_to_action_map=[_mapping_from_dict(item) for item in _as_list(data, "permission_to_action_map")],
        api_key_scope=api_key_scope,
    )


def load_rbac_config(config_path: Union[str, "os.PathLike[str]"]) -> Config:
    """
    Load an RBAC policy from a YAML file.

    Args:
        config_path: Path to the policy file

    Returns:
        Config built from the file (not yet validated)

    Raises:
        RBACConfigError: If the file is missing or unreadable, is not valid YAML, or has the wrong shape
    """
    if not os.path.isfile(config_path):
        raise RBACConfigError("path", f"policy file not found: {config_path}", str(config_path))

    logger.info(f"Loading RBAC configuration from: {config_path}")
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise RBACConfigError("path", f"invalid YAML in {config_path}: {exc}", str(config_path)) from exc
    except OSError as exc:
        raise RBACConfigError("path", f"cannot read policy file {config_path}: {exc}", str(config_path)) from exc

    if data is None:
        raise RBACConfigError("path", f"policy file is empty: {config_path}", str(config_path))

    return config_from_dict(data)
