"""
License persistence.

``LicenseStore`` is what the license service needs from the database:
the current active record, status changes, inserting a record, and the
number of active staff seats. ``SqlAlchemyLicenseStore`` backs it with the
application's Flask-SQLAlchemy session.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol
import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.services.licensing.exceptions import LicensePersistenceError

logger = logging.getLogger(__name__)

STATUS_ACTIVE = 'active'
STATUS_EXPIRED = 'expired'


@dataclass
class LicenseRecord:
    id: int
    license_key: str
    company_name: str
    email: str
    max_users: int
    issue_date: datetime
    expiry_date: datetime
    status: str = STATUS_ACTIVE
    license_type: str = 'commercial'
    term: Optional[str] = None
    license_id: Optional[str] = None
    display_company: Optional[str] = None
    display_email: Optional[str] = None
    features: Dict[str, Any] = field(default_factory=dict)
    activated_at: Optional[datetime] = None
    last_validated: Optional[datetime] = None


class LicenseStore(Protocol):
    def get_active_license_record(self) -> Optional[LicenseRecord]: ...

    def set_license_status(self, record_id: int, status: str) -> None: ...

    def insert_license_record(self, fields: Mapping[str, Any]) -> int: ...

    def count_active_staff(self) -> int: ...

    def expire_active_licenses(self) -> int: ...

    def touch_license(self, record_id: int, when: datetime) -> None: ...

    def atomic(self): ...


def _to_db(value: Optional[datetime]) -> Optional[datetime]:
    # Stored as naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SqlAlchemyLicenseStore:
    """License store on top of a Flask-SQLAlchemy session.

    Mutating calls only flush; wrap them in ``atomic()`` to commit.
    """

    def __init__(self, session):
        self.session = session

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"License store transaction failed: {type(e).__name__}")
            raise LicensePersistenceError() from e
        except Exception:
            self.session.rollback()
            raise

    def get_active_license_record(self) -> Optional[LicenseRecord]:
        from app.models import License
        try:
            row = (License.query
                   .filter_by(status=STATUS_ACTIVE)
                   .order_by(License.id.desc())
                   .first())
        except SQLAlchemyError as e:
            self.session.rollback()
            raise LicensePersistenceError() from e
        return self._to_record(row) if row is not None else None

    def set_license_status(self, record_id: int, status: str) -> None:
        from app.models import License
        try:
            License.query.filter_by(id=record_id).update({'status': status})
            self.session.flush()
        except SQLAlchemyError as e:
            raise LicensePersistenceError() from e

    def insert_license_record(self, fields: Mapping[str, Any]) -> int:
        from app.models import License
        values = dict(fields)
        features = values.pop('features', None)
        for key in ('issue_date', 'expiry_date', 'activated_at', 'last_validated'):
            if key in values:
                values[key] = _to_db(values[key])
        row = License(**values)
        row.features = json.dumps(features or {})
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            raise LicensePersistenceError() from e
        return row.id

    def count_active_staff(self) -> int:
        from app.models import Staff
        try:
            return Staff.query.filter_by(status='active').count()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise LicensePersistenceError() from e

    def expire_active_licenses(self) -> int:
        from app.models import License
        try:
            count = License.query.filter_by(status=STATUS_ACTIVE).update({'status': STATUS_EXPIRED})
            self.session.flush()
        except SQLAlchemyError as e:
            raise LicensePersistenceError() from e
        return count

    def touch_license(self, record_id: int, when: datetime) -> None:
        from app.models import License
        try:
            License.query.filter_by(id=record_id).update({'last_validated': _to_db(when)})
            self.session.flush()
        except SQLAlchemyError as e:
            raise LicensePersistenceError() from e

    @staticmethod
    def _to_record(row) -> LicenseRecord:
        return LicenseRecord(
            id=row.id,
            license_key=row.license_key,
            company_name=row.company_name,
            email=row.email,
            max_users=row.max_users,
            issue_date=_from_db(row.issue_date),
            expiry_date=_from_db(row.expiry_date),
            status=row.status,
            license_type=row.license_type,
            term=row.term,
            license_id=row.license_id,
            display_company=row.display_company,
            display_email=row.display_email,
            features=row.feature_map,
            activated_at=_from_db(row.activated_at),
            last_validated=_from_db(row.last_validated),
        )
