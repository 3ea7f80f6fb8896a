"""
RBAC error taxonomy.

Configuration errors are raised while validating/compiling a policy.
Authorization errors are raised by checker queries; they carry the internal
reason for logs plus a sanitized public_message that is safe to return to the caller.
"""

from typing import Any, Optional


class RBACError(Exception):
    """Base class for every error raised by rbac_engine."""


class RBACConfigError(RBACError):
    """Raised when an RBAC configuration is malformed or inconsistent."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class AuthorizationError(RBACError):
    """Base class for query-time errors."""

    prefix = "authorization error"
    public_message = "Forbidden"

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(f"{self.prefix}: {reason}" if reason else self.prefix)


class AuthorizationDenied(AuthorizationError):
    """The subject may not perform the requested operation."""

    prefix = "authorization denied"


class NilSubjectError(AuthorizationDenied):
    """No subject was supplied. Indicates a bug in the calling layer."""

    def __init__(self, reason: Optional[str] = "subject is nil"):
        super().__init__(reason)


class InvalidRoleError(AuthorizationError):
    """A role string is not one of the configured roles."""

    prefix = "invalid role"
    public_message = "Unauthorized"


class InvalidPermissionError(AuthorizationError):
    """A permission set is empty or names an undeclared permission."""

    prefix = "invalid permission"
    public_message = "Unauthorized"
