"""
RBAC Checker - compiled authorization decisions for one policy.

The checker validates a Config once, pre-computes lookup tables from it and
then only reads them. A built checker can be shared between threads without
locking; a policy change means building and publishing a new checker.
"""

from types import MappingProxyType
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from rbac_engine.audit import log_authorization_check, log_role_check
from rbac_engine.config import Config, validate_config
from rbac_engine.errors import (
    AuthorizationDenied,
    AuthorizationError,
    InvalidPermissionError,
    InvalidRoleError,
    NilSubjectError,
    RBACConfigError,
)
from rbac_engine.types import (
    Action,
    AuthSubject,
    AuthType,
    Permission,
    Resource,
    Role,
    RoleDefinition,
)
from rbac_engine.utils.logging import get_logger

logger = get_logger(__name__)


class RBACChecker:
    """
    Authorization checker built from a validated Config.

    Lookup tables (all read-only after __init__):
    - role -> level
    - role -> resource -> frozenset of actions
    - permission -> action and action -> permission
    - valid role and permission sets
    - API-key allowed resources (None when API keys are not configured)

    Example:
        >>> checker = RBACChecker(config)
        >>> checker.authorize(AuthSubject.jwt("viewer"), "document", "read")
        >>> checker.is_authorized(AuthSubject.jwt("viewer"), "document", "write")
        False
    """

    def __init__(self, config: Config):
        """
        Validate the config and compile it.

        Raises:
            RBACConfigError: If the config is invalid
        """
        validate_config(config)
        self._config = config

        self._role_index: Mapping[Role, int] = MappingProxyType(
            {rd.name: rd.level for rd in config.roles}
        )
        self._valid_roles: FrozenSet[Role] = frozenset(self._role_index)
        self._valid_permissions: FrozenSet[Permission] = frozenset(config.permissions)

        self._capabilities: Mapping[Role, Mapping[Resource, FrozenSet[Action]]] = MappingProxyType({
            role: MappingProxyType({res: frozenset(actions) for res, actions in resources.items()})
            for role, resources in config.capabilities.items()
        })

        self._perm_to_action: Mapping[Permission, Action] = MappingProxyType(
            {pm.permission: pm.action for pm in config.permission_to_action_map}
        )
        self._action_to_perm: Mapping[Action, Permission] = MappingProxyType(
            {pm.action: pm.permission for pm in config.permission_to_action_map}
        )

        self._api_key_resources: Optional[FrozenSet[Resource]] = None
        if config.api_key_scope is not None:
            self._api_key_resources = frozenset(config.api_key_scope.allowed_resources)

        self._authorizers: Mapping[AuthType, Callable[[AuthSubject, Resource, Action], None]] = MappingProxyType({
            AuthType.JWT: self._authorize_user_role,
            AuthType.API_KEY: self._authorize_api_key,
        })

        logger.info(
            f"RBAC checker initialized: {len(config.roles)} roles, {len(config.resources)} resources, "
            f"API keys {'enabled' if self._api_key_resources is not None else 'disabled'}"
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> Config:
        """The validated config this checker was compiled from."""
        return self._config

    @property
    def roles(self) -> Tuple[RoleDefinition, ...]:
        """Role definitions, most privileged first."""
        return tuple(sorted(self._config.roles, key=lambda rd: rd.level, reverse=True))

    def role_level(self, role: str) -> Optional[int]:
        return self._role_index.get(role)

    def roles_with_capability(self, resource: str, action: str) -> List[Role]:
        """
        Get all roles allowed to perform an action on a resource.

        Useful for error messages ("You need role X or Y to do this").

        Returns:
            Role names ordered by descending level
        """
        roles = [
            role for role, resources in self._capabilities.items()
            if action in resources.get(resource, ())
        ]
        return sorted(roles, key=lambda r: self._role_index[r], reverse=True)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def authorize(self, subject: Optional[AuthSubject], resource: str, action: str) -> None:
        """
        Check whether the subject can perform an action on a resource.

        Args:
            subject: The authenticated caller
            resource: Resource being accessed
            action: Operation requested on it

        Raises:
            NilSubjectError: If subject is None
            AuthorizationDenied: If access is not granted
        """
        try:
            self._decide(subject, Resource(resource), Action(action))
        except AuthorizationError as exc:
            log_authorization_check(subject, resource, action, granted=False, reason=exc.reason)
            raise
        log_authorization_check(subject, resource, action, granted=True)

    def is_authorized(self, subject: Optional[AuthSubject], resource: str, action: str) -> bool:
        """Boolean form of authorize(). Never raises."""
        try:
            self._decide(subject, Resource(resource), Action(action))
        except AuthorizationError:
            return False
        return True

    def require_role(self, subject: Optional[AuthSubject], min_role: str) -> None:
        """
        Check that a JWT subject holds at least the given role.

        API-key subjects always fail: role hierarchy does not apply to them.

        Raises:
            NilSubjectError: If subject is None
            AuthorizationDenied: If the subject's role is below min_role
        """
        try:
            if subject is None:
                raise NilSubjectError()
            if getattr(subject, "type", None) != AuthType.JWT:
                raise AuthorizationDenied("role check requires JWT authentication")
            if not self.is_role_elevated(subject.user_role, min_role):
                raise AuthorizationDenied(
                    f"requires minimum role '{min_role}', but user has role '{subject.user_role}'"
                )
        except AuthorizationError as exc:
            log_role_check(subject, min_role, granted=False, reason=exc.reason)
            raise
        log_role_check(subject, min_role, granted=True)

    def _decide(self, subject: Optional[AuthSubject], resource: Resource, action: Action) -> None:
        if subject is None:
            raise NilSubjectError()

        raw_type = getattr(subject, "type", None)
        try:
            auth_type = AuthType(raw_type)
        except ValueError:
            raise AuthorizationDenied(f"unknown auth type: {getattr(raw_type, 'value', raw_type)}") from None

        self._authorizers[auth_type](subject, resource, action)

    def _authorize_user_role(self, subject: AuthSubject, resource: Resource, action: Action) -> None:
        role = subject.user_role
        if not role:
            raise AuthorizationDenied("user role is empty")
        if action not in self._capabilities.get(role, {}).get(resource, ()):
            raise AuthorizationDenied(
                f"role '{role}' cannot perform action '{action}' on resource '{resource}'"
            )

    def _authorize_api_key(self, subject: AuthSubject, resource: Resource, action: Action) -> None:
        if self._api_key_resources is None:
            raise AuthorizationDenied("API key access is not configured")
        if resource not in self._api_key_resources:
            raise AuthorizationDenied(f"API keys cannot access resource '{resource}'")

        required = self.action_to_permission(action)
        if required is None:
            raise AuthorizationDenied(f"action '{action}' is not supported for API keys")
        if not self.has_permission(subject.permissions, required):
            raise AuthorizationDenied(
                f"API key lacks required permission '{required}' for action '{action}'"
            )

    # ------------------------------------------------------------------
    # Role and permission helpers
    # ------------------------------------------------------------------

    def is_role_elevated(self, role_a: str, role_b: str) -> bool:
        """
        Check whether role_a has equal or higher privilege than role_b.

        Unknown roles on either side yield False.
        """
        level_a = self._role_index.get(role_a)
        level_b = self._role_index.get(role_b)
        if level_a is None or level_b is None:
            return False
        return level_a >= level_b

    def validate_role(self, role: str) -> Role:
        """
        Return the role if it is configured.

        Raises:
            InvalidRoleError: If the role is not configured (exact match)
        """
        if role in self._valid_roles:
            return Role(role)
        raise InvalidRoleError(role)

    @staticmethod
    def has_permission(permissions: Iterable[str], required: str) -> bool:
        """Exact membership test. A bare string counts as a single permission."""
        if isinstance(permissions, str):
            return permissions == required
        return required in permissions

    def validate_permissions(self, permissions: Iterable[str]) -> None:
        """
        Check that a permission set is non-empty and fully declared.

        Raises:
            InvalidPermissionError: On an empty set or an undeclared permission
        """
        permissions = list(permissions)
        if not permissions:
            raise InvalidPermissionError("permissions array cannot be empty")
        for perm in permissions:
            if perm not in self._valid_permissions:
                raise InvalidPermissionError(perm)

    def permission_to_action(self, permission: str) -> Optional[Action]:
        """Mapped action for a permission, or None."""
        return self._perm_to_action.get(permission)

    def action_to_permission(self, action: str) -> Optional[Permission]:
        """Mapped permission for an action, or None (e.g. actions not exposed to API keys)."""
        return self._action_to_perm.get(action)


def must_new(config: Config) -> RBACChecker:
    """
    Build a checker, terminating the process if the config is invalid.

    Only for policies known to be valid at startup (e.g. bundled presets);
    never for configuration supplied at runtime.
    """
    try:
        return RBACChecker(config)
    except RBACConfigError as exc:
        logger.critical(f"rbac.must_new: {exc}")
        raise SystemExit(f"rbac.must_new: {exc}") from exc
