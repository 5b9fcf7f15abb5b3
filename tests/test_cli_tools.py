from datetime import datetime, timedelta

from app import db
from app.models import AuditLog, Staff
from app.services.licensing import decode_verified, issue

from conftest import LICENSE_SECRET


def test_create_admin(app, runner):
    result = runner.invoke(args=['create-admin', '--name', 'Owner', '--email', 'Owner@Office.example',
                                 '--password', 's3cret-pass'])
    assert result.exit_code == 0
    assert 'Created admin owner@office.example' in result.output

    staff = Staff.query.filter_by(email='owner@office.example').first()
    assert staff.role == 'admin'
    assert staff.check_password('s3cret-pass')


def test_create_admin_twice_is_a_noop(app, runner, admin_user):
    result = runner.invoke(args=['create-admin', '--name', 'Admin', '--email', 'admin@office.example',
                                 '--password', 'whatever'])
    assert 'already exists' in result.output
    assert Staff.query.count() == 1


def test_license_generate_prints_signed_key(app, runner):
    result = runner.invoke(args=['license', 'generate', '--type', 'subscription', '--company', 'Acme CA',
                                 '--email', 'owner@acme.example', '--users', '7', '--feature', 'apiAccess'])
    assert result.exit_code == 0

    decoded = decode_verified(result.output.strip(), LICENSE_SECRET)
    assert decoded.ok
    assert decoded.claims.users == 7
    assert decoded.claims.features['apiAccess'] is True
    assert LICENSE_SECRET not in result.output


def test_license_generate_commercial_needs_months(app, runner):
    result = runner.invoke(args=['license', 'generate', '--company', 'Acme CA', '--email', 'owner@acme.example'])
    assert result.exit_code != 0
    assert 'duration in months' in result.output


def test_license_inspect(app, runner):
    token = issue('commercial', 'Acme CA', 'owner@acme.example', LICENSE_SECRET, duration_months=12)
    result = runner.invoke(args=['license', 'inspect', token])
    assert result.exit_code == 0
    assert '"company": "Acme CA"' in result.output
    assert 'Signature OK' in result.output


def test_license_inspect_forged_key(app, runner):
    token = issue('commercial', 'Acme CA', 'owner@acme.example', 'someone-else', duration_months=12)
    result = runner.invoke(args=['license', 'inspect', token])
    assert '"company": "Acme CA"' in result.output
    assert 'Not valid: Invalid license signature' in result.output


def test_license_inspect_garbage(app, runner):
    result = runner.invoke(args=['license', 'inspect', 'garbage'])
    assert result.exit_code == 1
    assert 'Unreadable license key' in result.output


def test_cleanup_audit_logs_respects_days_option(app, runner):
    db.session.add_all([
        AuditLog(action='OLD', timestamp=datetime.utcnow() - timedelta(days=10)),
        AuditLog(action='RECENT', timestamp=datetime.utcnow() - timedelta(days=2)),
    ])
    db.session.commit()

    result = runner.invoke(args=['cleanup-audit-logs', '--days', '5'])
    assert 'Deleted 1 old audit rows' in result.output
    assert [row.action for row in AuditLog.query.all()] == ['RECENT']


def test_license_generate_rejects_term_beyond_the_calendar(app, runner):
    result = runner.invoke(args=['license', 'generate', '--company', 'Acme CA', '--email', 'owner@acme.example',
                                 '--months', '200000'])
    assert result.exit_code == 2
    assert 'out of range' in result.output
