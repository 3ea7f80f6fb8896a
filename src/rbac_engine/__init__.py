"""
rbac_engine - configuration-driven Role-Based Access Control

This package provides:
- Policy definition (Config) and validation
- A compiled, immutable authorization checker
- Bundled policy presets (YAML)
- Audit logging for authorization decisions

Usage:
    from rbac_engine import RBACChecker, AuthSubject, load_rbac_config

    checker = RBACChecker(load_rbac_config('configs/policy.yaml'))
    checker.authorize(AuthSubject.jwt('editor'), 'file', 'write')
"""

from rbac_engine.types import (
    Action,
    APIKeyResourceScope,
    AuthSubject,
    AuthType,
    Permission,
    PermissionMapping,
    Resource,
    Role,
    RoleDefinition,
)
from rbac_engine.errors import (
    AuthorizationDenied,
    AuthorizationError,
    InvalidPermissionError,
    InvalidRoleError,
    NilSubjectError,
    RBACConfigError,
    RBACError,
)
from rbac_engine.config import (
    Config,
    config_from_dict,
    load_rbac_config,
    validate_config,
)
from rbac_engine.checker import (
    RBACChecker,
    must_new,
)

__all__ = [
    # Types
    'Action',
    'APIKeyResourceScope',
    'AuthSubject',
    'AuthType',
    'Permission',
    'PermissionMapping',
    'Resource',
    'Role',
    'RoleDefinition',
    # Errors
    'AuthorizationDenied',
    'AuthorizationError',
    'InvalidPermissionError',
    'InvalidRoleError',
    'NilSubjectError',
    'RBACConfigError',
    'RBACError',
    # Config
    'Config',
    'config_from_dict',
    'load_rbac_config',
    'validate_config',
    # Checker
    'RBACChecker',
    'must_new',
]
