from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func, false
import uuid

db = SQLAlchemy()


def _gen_uuid():
    return str(uuid.uuid4())


# Package states
PENDING = 'pending'
DELIVERED = 'delivered'
INCIDENT = 'incident'

# Roles
ADMIN = 'admin'
CONSERJE = 'conserje'
RESIDENTE = 'residente'
STAFF_ROLES = (ADMIN, CONSERJE)

# Audit actions
RECEIVED = 'received'
QR_ISSUED = 'qr_issued'
QR_VALIDATED = 'qr_validated'
AUDIT_ACTIONS = (RECEIVED, 'delivered', INCIDENT, QR_ISSUED, QR_VALIDATED,
                 'notification_sent', 'state_updated')


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=_gen_uuid)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.Text)
    role = db.Column(db.String(16), nullable=False, default=RESIDENTE)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())


class Package(db.Model):
    __tablename__ = 'packages'
    id = db.Column(db.String(36), primary_key=True, default=_gen_uuid)
    code = db.Column(db.String(64), nullable=False)
    carrier = db.Column(db.String(128))
    recipient_name = db.Column(db.String(255), nullable=False)
    resident_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    state = db.Column(db.String(16), nullable=False, default=PENDING)  # pending|delivered|incident
    received_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    delivered_at = db.Column(db.DateTime(timezone=True))


class QRToken(db.Model):
    __tablename__ = 'qr_tokens'
    id = db.Column(db.String(36), primary_key=True, default=_gen_uuid)
    package_id = db.Column(db.String(36), db.ForeignKey('packages.id'), nullable=False, index=True)
    token = db.Column(db.String(128), nullable=False, unique=True, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())


class AuditLog(db.Model):
    __tablename__ = 'audit_log'
    id = db.Column(db.String(36), primary_key=True, default=_gen_uuid)
    ts = db.Column(db.DateTime(timezone=True), server_default=func.now())
    package_id = db.Column(db.String(36), db.ForeignKey('packages.id'), index=True)
    actor_id = db.Column(db.String(64))
    action = db.Column(db.String(64), nullable=False)
    payload_json = db.Column(db.JSON)
    ip = db.Column(db.String(64))
    user_agent = db.Column(db.Text)
