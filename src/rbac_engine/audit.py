"""
RBAC Audit Logging - decision trail for authorization checks

Every authorize/require_role decision made by the checker is reported here.
Granted checks are logged at DEBUG; denials get a WARNING line plus a
structured JSON record for easier parsing.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from rbac_engine.types import AuthSubject, AuthType
from rbac_engine.utils.logging import get_logger

# Dedicated audit logger
audit_logger = get_logger('rbac.audit')


def describe_subject(subject: Optional[AuthSubject]) -> str:
    """Short human-readable form of a subject for log lines."""
    if subject is None:
        return 'nil'
    subject_type = getattr(subject, 'type', None)
    if subject_type == AuthType.JWT:
        return f"jwt:{getattr(subject, 'user_role', None) or '-'}"
    if subject_type == AuthType.API_KEY:
        permissions = getattr(subject, 'permissions', None) or ()
        return f"api_key:[{','.join(map(str, permissions))}]"
    return f"unknown:{getattr(subject_type, 'value', subject_type)}"


def _emit(log_entry: dict, log_message: str, granted: bool) -> None:
    if granted:
        audit_logger.debug(log_message)
    else:
        audit_logger.warning(log_message)
        audit_logger.info(f"AUDIT: {json.dumps(log_entry)}")


def log_authorization_check(
    subject: Optional[AuthSubject],
    resource: str,
    action: str,
    granted: bool,
    reason: Optional[str] = None,
) -> None:
    """
    Log a resource/action authorization decision.

    Args:
        subject: The subject that was checked (None for a missing subject)
        resource: Requested resource
        action: Requested action
        granted: Whether access was granted
        reason: Internal denial reason, if denied
    """
    who = describe_subject(subject)
    result = 'GRANTED' if granted else 'DENIED'

    log_entry = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'event': 'authorize',
        'subject': who,
        'resource': resource,
        'action': action,
        'result': result,
    }
    if reason:
        log_entry['reason'] = reason

    log_message = f"{who} | {resource}:{action} | {result}"
    if reason:
        log_message += f" | {reason}"

    _emit(log_entry, log_message, granted)


def log_role_check(
    subject: Optional[AuthSubject],
    min_role: str,
    granted: bool,
    reason: Optional[str] = None,
) -> None:
    """
    Log a minimum-role decision.

    Args:
        subject: The subject that was checked (None for a missing subject)
        min_role: Role the operation requires
        granted: Whether access was granted
        reason: Internal denial reason, if denied
    """
    who = describe_subject(subject)
    result = 'GRANTED' if granted else 'DENIED'

    log_entry = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'event': 'require_role',
        'subject': who,
        'min_role': min_role,
        'result': result,
    }
    if reason:
        log_entry['reason'] = reason

    log_message = f"{who} | role>={min_role} | {result}"
    if reason:
        log_message += f" | {reason}"

    _emit(log_entry, log_message, granted)
