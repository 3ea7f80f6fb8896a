"""
rbac-engine command line tool.

Validate policy files (e.g. in CI), inspect the bundled presets and try
authorization queries by hand.
"""

from typing import Optional, Tuple

import click

from rbac_engine.checker import RBACChecker
from rbac_engine.config import load_rbac_config
from rbac_engine.errors import AuthorizationError, RBACConfigError
from rbac_engine.presets import all_presets, get_preset
from rbac_engine.types import AuthSubject
from rbac_engine.utils.logging import setup_cli_logging


def _format_hierarchy(checker: RBACChecker) -> str:
    return " > ".join(f"{rd.name}({rd.level})" for rd in checker.roles)


@click.group()
@click.option('--verbosity', '-v', type=int, default=2, help="Logging verbosity level (0-4)")
def cli(verbosity: int):
    """Configuration-driven RBAC policy tools."""
    setup_cli_logging(verbosity=verbosity)


@click.command()
@click.argument('policy_files', nargs=-1, required=True, type=click.Path(dir_okay=False))
def validate(policy_files: Tuple[str, ...]):
    """Validate one or more YAML policy files."""
    failures = 0
    for path in policy_files:
        try:
            RBACChecker(load_rbac_config(path))
        except RBACConfigError as exc:
            failures += 1
            click.echo(f"INVALID {path}: {exc}")
            continue
        click.echo(f"OK      {path}")

    if failures:
        raise click.ClickException(f"{failures} of {len(policy_files)} policy file(s) invalid")


@click.command()
def presets():
    """List the bundled presets and check that each one is valid."""
    failures = 0
    for preset in all_presets():
        try:
            checker = RBACChecker(preset.load())
        except RBACConfigError as exc:
            failures += 1
            click.echo(f"{preset.name}: INVALID ({exc})")
            continue

        scope = checker.config.api_key_scope
        api_keys = ", ".join(scope.allowed_resources) if scope is not None else "disabled"
        click.echo(f"{preset.name}: {preset.description}")
        click.echo(f"  roles:    {_format_hierarchy(checker)}")
        click.echo(f"  api keys: {api_keys}")

    if failures:
        raise click.ClickException(f"{failures} preset(s) invalid")


@click.command()
@click.option('--policy', '-p', 'policy_file', type=click.Path(dir_okay=False), help="Path to a YAML policy file")
@click.option('--preset', 'preset_name', type=str, help="Name of a bundled preset")
@click.option('--role', '-r', type=str, help="Check as a JWT subject with this role")
@click.option('--permission', '-P', 'permissions', type=str, multiple=True,
              help="Check as an API-key subject holding this permission (repeatable)")
@click.argument('resource')
@click.argument('action')
@click.pass_context
def check(ctx: click.Context, policy_file: Optional[str], preset_name: Optional[str],
          role: Optional[str], permissions: Tuple[str, ...], resource: str, action: str):
    """Decide whether a subject may perform ACTION on RESOURCE."""
    if not (bool(policy_file) ^ bool(preset_name)):
        raise click.ClickException("Must specify exactly one of --policy or --preset")
    if not (bool(role) ^ bool(permissions)):
        raise click.ClickException("Must specify exactly one of --role or --permission")

    try:
        config = load_rbac_config(policy_file) if policy_file else get_preset(preset_name)
        checker = RBACChecker(config)
    except RBACConfigError as exc:
        raise click.ClickException(str(exc))
    except KeyError as exc:
        raise click.ClickException(exc.args[0])

    if role:
        subject = AuthSubject.jwt(role)
    else:
        subject = AuthSubject.api_key(permissions)

    try:
        checker.authorize(subject, resource, action)
    except AuthorizationError as exc:
        click.echo(f"DENY: {exc.reason}")
        allowed_roles = checker.roles_with_capability(resource, action)
        if role and allowed_roles:
            click.echo(f"  allowed roles: {', '.join(allowed_roles)}")
        ctx.exit(1)

    click.echo("ALLOW")


cli.add_command(validate)
cli.add_command(presets)
cli.add_command(check)


def main():
    cli()


if __name__ == '__main__':
    main()
