"""Flask CLI commands: staff bootstrap, license tooling and audit retention."""

import json

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from app import db
from app.services.licensing import KNOWN_FEATURES, LicenseIssueError, LicenseType, decode_unverified, issue, verify

license_cli = AppGroup('license', help='Generate and inspect license keys.')


@click.command('create-admin')
@click.option('--name', required=True)
@click.option('--email', required=True)
@click.password_option()
@with_appcontext
def create_admin(name, email, password):
    """Create an active admin staff account."""
    from app.models import Staff

    email = email.strip().lower()
    if Staff.query.filter_by(email=email).first():
        click.echo(f"Staff member {email} already exists")
        return
    staff = Staff(name=name, email=email, role='admin', status='active')
    staff.set_password(password)
    db.session.add(staff)
    db.session.commit()
    click.echo(f"Created admin {email} (id {staff.id})")


@license_cli.command('generate')
@click.option('--type', 'license_type', type=click.Choice([t.value for t in LicenseType]), default='commercial')
@click.option('--company', required=True)
@click.option('--email', required=True)
@click.option('--months', type=int, default=None, help='Duration in months.')
@click.option('--users', type=int, default=None, help='Maximum active staff.')
@click.option('--feature', 'features', multiple=True, type=click.Choice(KNOWN_FEATURES),
              help='Enable a feature; repeatable.')
def generate_license(license_type, company, email, months, users, features):
    """Print a signed license key."""
    try:
        token = issue(
            license_type, company, email, current_app.config['LICENSE_SECRET'],
            duration_months=months, max_users=users,
            features={name: True for name in features},
            algorithm=current_app.config.get('LICENSE_ALGORITHM', 'HS256'),
        )
    except LicenseIssueError as e:
        raise click.UsageError(e.message)
    click.echo(token)


@license_cli.command('inspect')
@click.argument('token')
def inspect_license(token):
    """Show a license key's claims and whether it verifies."""
    claims = decode_unverified(token)
    if claims is None:
        click.echo('Unreadable license key')
        raise SystemExit(1)

    click.echo(json.dumps(claims.to_payload(), indent=2))
    result = verify(token, current_app.config['LICENSE_SECRET'],
                    algorithm=current_app.config.get('LICENSE_ALGORITHM', 'HS256'))
    if result.valid:
        click.echo(f"Signature OK, {result.days_remaining} days remaining")
    else:
        click.echo(f"Not valid: {result.reason}")


@click.command('cleanup-audit-logs')
@click.option('--days', type=int, default=None, help='Retention in days (defaults to AUDIT_RETENTION_DAYS).')
@with_appcontext
def cleanup_audit_logs(days):
    """Delete audit rows older than the retention period."""
    from app.utils.scheduler import cleanup_old_audit_rows
    deleted = cleanup_old_audit_rows(current_app._get_current_object(), days=days)
    click.echo(f"Deleted {deleted} old audit rows")


def register_commands(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(license_cli)
    app.cli.add_command(cleanup_audit_logs)
