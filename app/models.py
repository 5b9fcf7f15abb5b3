from app import db
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
import datetime
import json


class Staff(UserMixin, db.Model):
    __tablename__ = 'staff'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), default='staff', nullable=False)  # 'admin', 'manager', 'staff'
    status = db.Column(db.String(20), default='active', nullable=False, index=True)  # 'active', 'inactive'
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __str__(self):
        return self.name

    @property
    def is_admin(self):
        return self.role == 'admin'

    @property
    def is_active(self):
        return self.status == 'active'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class License(db.Model):
    __tablename__ = 'license'

    id = db.Column(db.Integer, primary_key=True)
    license_key = db.Column(db.Text, nullable=False)
    license_id = db.Column(db.String(36), index=True)
    company_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    # Request-supplied names shown in the UI; never used for verification
    display_company = db.Column(db.String(200))
    display_email = db.Column(db.String(120))
    max_users = db.Column(db.Integer, default=5, nullable=False)
    features = db.Column(db.Text)
    license_type = db.Column(db.String(20), default='commercial', nullable=False)
    term = db.Column(db.String(20))  # 'trial', '1year', '3year', '5year', 'lifetime'
    issue_date = db.Column(db.DateTime, nullable=False)
    expiry_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), default='active', nullable=False, index=True)  # 'active', 'expired'
    activated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)
    last_validated = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __str__(self):
        return f"License {self.id}: {self.company_name} ({self.status}) until {self.expiry_date:%Y-%m-%d}"

    @property
    def feature_map(self):
        if not self.features:
            return {}
        try:
            return json.loads(self.features)
        except ValueError:
            return {}


class AuditLog(db.Model):
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.datetime.utcnow, index=True)
    actor_id = db.Column(db.Integer)
    actor_role = db.Column(db.String(20))
    ip = db.Column(db.String(45))
    action = db.Column(db.String(64), nullable=False, index=True)
    object_type = db.Column(db.String(64))
    object_id = db.Column(db.String(64))
    details = db.Column(db.Text)
    success = db.Column(db.Boolean, default=True)

    def __str__(self):
        return f"{self.timestamp:%Y-%m-%d %H:%M:%S} {self.action}"
