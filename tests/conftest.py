import copy
import os
from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from flask import g

os.environ.setdefault('SECRET_KEY', 'test-secret-key-for-access-tokens')
os.environ.setdefault('LICENSE_SECRET', 'test-license-signing-secret-for-licensing')

from app import create_app, db
from app.models import License, Staff
from app.services.licensing import LicensePersistenceError, LicenseRecord, LicenseService
from app.services.licensing.lifecycle import issue
from app.services.licensing.store import STATUS_ACTIVE, STATUS_EXPIRED
from app.utils.tokens import create_access_token

LICENSE_SECRET = 'test-license-signing-secret-for-licensing'
FIXED_NOW = datetime(2024, 7, 1, tzinfo=timezone.utc)


class InMemoryLicenseStore:
    """LicenseStore kept in a dict, with switches to simulate an unavailable database."""

    def __init__(self, active_staff=1):
        self.records = {}
        self.active_staff = active_staff
        self.fail_reads = False
        self.fail_writes = False
        self.fail_inserts = False
        self.commits = 0
        self._next_id = 1

    @contextmanager
    def atomic(self):
        snapshot = copy.deepcopy(self.records)
        try:
            yield
        except Exception:
            self.records = snapshot
            raise
        self.commits += 1

    def _check_write(self):
        if self.fail_writes:
            raise LicensePersistenceError()

    def get_active_license_record(self):
        if self.fail_reads:
            raise LicensePersistenceError()
        active = [r for r in self.records.values() if r.status == STATUS_ACTIVE]
        if not active:
            return None
        return copy.deepcopy(max(active, key=lambda r: r.id))

    def set_license_status(self, record_id, status):
        self._check_write()
        self.records[record_id].status = status

    def insert_license_record(self, fields):
        self._check_write()
        if self.fail_inserts:
            raise LicensePersistenceError()
        record = LicenseRecord(id=self._next_id, **dict(fields))
        self.records[record.id] = record
        self._next_id += 1
        return record.id

    def count_active_staff(self):
        if self.fail_reads:
            raise LicensePersistenceError()
        return self.active_staff

    def expire_active_licenses(self):
        self._check_write()
        count = 0
        for record in self.records.values():
            if record.status == STATUS_ACTIVE:
                record.status = STATUS_EXPIRED
                count += 1
        return count

    def touch_license(self, record_id, when):
        self._check_write()
        self.records[record_id].last_validated = when

    def active_records(self):
        return [r for r in self.records.values() if r.status == STATUS_ACTIVE]


@pytest.fixture
def store():
    return InMemoryLicenseStore()


@pytest.fixture
def service(store):
    """LicenseService over the in-memory store with the clock pinned to FIXED_NOW."""
    return LicenseService(store, LICENSE_SECRET, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_token():
    """Issue a signed token; defaults to a 12-month commercial license issued at FIXED_NOW."""
    def _make(kind='commercial', company='Acme CA', email='owner@acme.example',
              issued=FIXED_NOW, secret=LICENSE_SECRET, **kwargs):
        if kind == 'commercial' and 'expiry' not in kwargs and 'duration_months' not in kwargs:
            kwargs['duration_months'] = 12
        return issue(kind, company, email, secret, issued=issued, **kwargs)
    return _make


@pytest.fixture
def app():
    """Create and configure a test app."""
    os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
    app = create_app()
    app.config['TESTING'] = True
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'

    @app.teardown_request
    def forget_request_user(exc):
        # Test requests share the fixture's app context, and with it g
        g.pop('_login_user', None)
        g.pop('license', None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def make_staff(app):
    def _make(name='Staff Member', email=None, role='staff', status='active', password='password'):
        staff = Staff(name=name, email=email or f"staff{Staff.query.count() + 1}@office.example",
                      role=role, status=status)
        staff.set_password(password)
        db.session.add(staff)
        db.session.commit()
        return staff
    return _make


@pytest.fixture
def admin_user(make_staff):
    """Create an admin staff account."""
    return make_staff(name='Admin', email='admin@office.example', role='admin')


@pytest.fixture
def regular_user(make_staff):
    return make_staff(name='Clerk', email='clerk@office.example', role='staff')


@pytest.fixture
def admin_headers(app, admin_user):
    return {'Authorization': f"Bearer {create_access_token(admin_user)}"}


@pytest.fixture
def staff_headers(app, regular_user):
    return {'Authorization': f"Bearer {create_access_token(regular_user)}"}


@pytest.fixture
def store_license(app):
    """Insert a License row directly, bypassing activation (e.g. an already expired key)."""
    from app.services.licensing import decode_unverified

    def _store(token, status=STATUS_ACTIVE):
        claims = decode_unverified(token)
        row = License(
            license_key=token,
            license_id=claims.license_id,
            company_name=claims.company,
            email=claims.email,
            max_users=claims.users,
            license_type=claims.type.value,
            issue_date=claims.issued.replace(tzinfo=None),
            expiry_date=claims.expiry.replace(tzinfo=None),
            status=status,
        )
        db.session.add(row)
        db.session.commit()
        return row
    return _store
