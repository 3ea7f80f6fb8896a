"""
Unit tests for the rbac-engine command line tool.
"""
import logging

import pytest
from click.testing import CliRunner

from rbac_engine.cli import cli
from rbac_engine.presets import PRESETS


VALID_POLICY = """
roles:
  - {name: admin, level: 2}
  - {name: viewer, level: 1}
permissions: [read, write]
resources: [document]
actions: [read, write]
capabilities:
  admin: {document: [read, write]}
  viewer: {document: [read]}
permission_to_action_map:
  - {permission: read, action: read}
  - {permission: write, action: write}
api_key_scope:
  allowed_resources: [document]
"""

INVALID_POLICY = VALID_POLICY.replace("viewer: {document: [read]}", "ghost: {document: [read]}")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI installs a handler on the package logger; undo it after each test."""
    root = logging.getLogger("rbac_engine")
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def policy_files(tmp_path):
    valid = tmp_path / "valid.yaml"
    valid.write_text(VALID_POLICY)
    invalid = tmp_path / "invalid.yaml"
    invalid.write_text(INVALID_POLICY)
    return str(valid), str(invalid)


# =============================================================================
# validate
# =============================================================================

class TestValidateCommand:

    def test_valid_file(self, runner, policy_files):
        valid, _ = policy_files
        result = runner.invoke(cli, ["validate", valid])
        assert result.exit_code == 0
        assert f"OK      {valid}" in result.output

    def test_invalid_file(self, runner, policy_files):
        valid, invalid = policy_files
        result = runner.invoke(cli, ["validate", valid, invalid])
        assert result.exit_code == 1
        assert "unknown role: ghost" in result.output
        assert "1 of 2 policy file(s) invalid" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["validate", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "policy file not found" in result.output

    def test_unreadable_file(self, runner, policy_files, monkeypatch):
        valid, _ = policy_files

        def deny(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("rbac_engine.config.open", deny, raising=False)
        result = runner.invoke(cli, ["validate", valid])
        assert result.exit_code == 1
        assert f"INVALID {valid}: path: cannot read policy file" in result.output
        assert "Traceback" not in result.output


# =============================================================================
# presets
# =============================================================================

class TestPresetsCommand:

    def test_lists_every_preset(self, runner):
        result = runner.invoke(cli, ["presets"])
        assert result.exit_code == 0
        for preset in PRESETS:
            assert f"{preset.name}: {preset.description}" in result.output
        assert "admin(3) > editor(2) > viewer(1)" in result.output
        assert "api keys: webhook" in result.output


# =============================================================================
# check
# =============================================================================

class TestCheckCommand:

    def test_allow(self, runner, policy_files):
        valid, _ = policy_files
        result = runner.invoke(cli, ["-v", "0", "check", "--policy", valid, "--role", "viewer", "document", "read"])
        assert result.exit_code == 0
        assert "ALLOW" in result.output

    def test_deny_lists_allowed_roles(self, runner, policy_files):
        valid, _ = policy_files
        result = runner.invoke(cli, ["-v", "0", "check", "--policy", valid, "--role", "viewer", "document", "write"])
        assert result.exit_code == 1
        assert "DENY: role 'viewer' cannot perform action 'write' on resource 'document'" in result.output
        assert "allowed roles: admin" in result.output

    def test_api_key_on_preset(self, runner):
        result = runner.invoke(cli, ["-v", "0", "check", "--preset", "cms", "-P", "read", "-P", "write", "post", "write"])
        assert result.exit_code == 0
        assert "ALLOW" in result.output

    def test_api_key_denied(self, runner):
        result = runner.invoke(cli, ["-v", "0", "check", "--preset", "cms", "-P", "read", "page", "read"])
        assert result.exit_code == 1
        assert "API keys cannot access resource 'page'" in result.output

    def test_requires_one_policy_source(self, runner, policy_files):
        valid, _ = policy_files
        result = runner.invoke(cli, ["check", "--policy", valid, "--preset", "cms", "--role", "admin", "post", "read"])
        assert result.exit_code == 1
        assert "exactly one of --policy or --preset" in result.output

    def test_requires_one_subject(self, runner):
        result = runner.invoke(cli, ["check", "--preset", "cms", "post", "read"])
        assert result.exit_code == 1
        assert "exactly one of --role or --permission" in result.output

    def test_unknown_preset(self, runner):
        result = runner.invoke(cli, ["check", "--preset", "nope", "--role", "admin", "post", "read"])
        assert result.exit_code == 1
        assert "Unknown RBAC preset 'nope'" in result.output

    def test_invalid_policy(self, runner, policy_files):
        _, invalid = policy_files
        result = runner.invoke(cli, ["check", "--policy", invalid, "--role", "admin", "document", "read"])
        assert result.exit_code == 1
        assert "unknown role: ghost" in result.output
