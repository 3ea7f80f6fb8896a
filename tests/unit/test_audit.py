"""
Unit tests for RBAC audit logging of checker decisions.
"""
import json
import logging

import pytest

from rbac_engine.audit import describe_subject, log_authorization_check
from rbac_engine.checker import RBACChecker
from rbac_engine.errors import AuthorizationDenied
from rbac_engine.presets import get_preset
from rbac_engine.types import AuthSubject

AUDIT_LOGGER = "rbac_engine.rbac.audit"


@pytest.fixture
def checker():
    return RBACChecker(get_preset("file_management"))


def _audit_records(caplog):
    return [r for r in caplog.records if r.name == AUDIT_LOGGER]


class TestDescribeSubject:

    def test_forms(self):
        assert describe_subject(None) == "nil"
        assert describe_subject(AuthSubject.jwt("editor")) == "jwt:editor"
        assert describe_subject(AuthSubject.api_key(["read", "write"])) == "api_key:[read,write]"
        assert describe_subject(AuthSubject(type="oauth")) == "unknown:oauth"

    def test_malformed_subjects(self):
        assert describe_subject(AuthSubject(type="api_key", permissions=(1, None))) == "api_key:[1,None]"
        assert describe_subject(object()) == "unknown:None"


class TestAuthorizationAudit:

    def test_granted_logged_at_debug(self, checker, caplog):
        caplog.set_level(logging.DEBUG, logger=AUDIT_LOGGER)
        checker.authorize(AuthSubject.jwt("viewer"), "file", "read")

        records = _audit_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.DEBUG
        assert "jwt:viewer | file:read | GRANTED" in records[0].getMessage()

    def test_denial_logged_with_reason(self, checker, caplog):
        caplog.set_level(logging.DEBUG, logger=AUDIT_LOGGER)
        with pytest.raises(AuthorizationDenied):
            checker.authorize(AuthSubject.jwt("viewer"), "file", "delete")

        records = _audit_records(caplog)
        warning = [r for r in records if r.levelno == logging.WARNING]
        assert len(warning) == 1
        assert "DENIED" in warning[0].getMessage()
        assert "role 'viewer' cannot perform action 'delete'" in warning[0].getMessage()

        structured = [r.getMessage() for r in records if r.getMessage().startswith("AUDIT: ")]
        entry = json.loads(structured[0][len("AUDIT: "):])
        assert entry["event"] == "authorize"
        assert entry["result"] == "DENIED"
        assert entry["resource"] == "file"
        assert entry["subject"] == "jwt:viewer"

    def test_role_check_logged(self, checker, caplog):
        caplog.set_level(logging.DEBUG, logger=AUDIT_LOGGER)
        with pytest.raises(AuthorizationDenied):
            checker.require_role(AuthSubject.api_key(["read"]), "viewer")

        messages = [r.getMessage() for r in _audit_records(caplog)]
        assert any("role>=viewer | DENIED" in m for m in messages)

    def test_malformed_subject_denial_logged(self, checker, caplog):
        caplog.set_level(logging.DEBUG, logger=AUDIT_LOGGER)
        with pytest.raises(AuthorizationDenied):
            checker.authorize(AuthSubject(type="api_key", permissions=(7,)), "file", "read")

        messages = [r.getMessage() for r in _audit_records(caplog)]
        assert any(m.startswith("api_key:[7] | file:read | DENIED") for m in messages)

    def test_is_authorized_does_not_audit(self, checker, caplog):
        caplog.set_level(logging.DEBUG, logger=AUDIT_LOGGER)
        checker.is_authorized(AuthSubject.jwt("viewer"), "file", "delete")
        assert _audit_records(caplog) == []

    def test_direct_call(self, caplog):
        caplog.set_level(logging.INFO, logger=AUDIT_LOGGER)
        log_authorization_check(None, "file", "read", granted=False, reason="subject is nil")
        messages = [r.getMessage() for r in _audit_records(caplog)]
        assert "nil | file:read | DENIED | subject is nil" in messages
