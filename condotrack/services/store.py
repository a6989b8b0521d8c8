"""SQLAlchemy-backed data access for packages, QR tokens and the audit log.

Methods never commit on their own; callers group them with ``atomic()``.
Reads bypass the session identity map so decisions are taken on the latest
committed row state.
"""
from contextlib import contextmanager
from datetime import datetime
from sqlalchemy import delete, select, update
from ..models import db, Package, QRToken, AuditLog, PENDING, DELIVERED


class SqlStore:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    @contextmanager
    def atomic(self):
        try:
            yield self
            self.session.commit()
        except BaseException:
            # includes GeneratorExit/KeyboardInterrupt so a cancelled request leaves nothing behind
            self.session.rollback()
            raise

    def _fresh(self, stmt):
        return self.session.execute(stmt.execution_options(populate_existing=True)).scalars().first()

    # packages
    def find_package(self, package_id: str, for_update: bool = False) -> Package | None:
        stmt = select(Package).where(Package.id == package_id)
        if for_update:
            # row lock held until atomic() ends; serializes re-issues for one package
            stmt = stmt.with_for_update()
        return self._fresh(stmt)

    def set_package_delivered(self, package_id: str, ts: datetime) -> bool:
        res = self.session.execute(
            update(Package)
            .where(Package.id == package_id, Package.state == PENDING)
            .values(state=DELIVERED, delivered_at=ts)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    # tokens
    def delete_tokens_for_package(self, package_id: str) -> None:
        self.session.execute(
            delete(QRToken).where(QRToken.package_id == package_id).execution_options(synchronize_session=False)
        )

    def create_token(self, package_id: str, secret: str, expires_at: datetime) -> QRToken:
        tok = QRToken(package_id=package_id, token=secret, expires_at=expires_at, used=False)
        self.session.add(tok)
        self.session.flush()
        return tok

    def find_token_by_secret(self, secret: str) -> QRToken | None:
        return self._fresh(select(QRToken).where(QRToken.token == secret))

    def find_live_token(self, package_id: str, now: datetime) -> QRToken | None:
        return self._fresh(
            select(QRToken)
            .where(QRToken.package_id == package_id, QRToken.used.is_(False), QRToken.expires_at > now)
            .order_by(QRToken.created_at.desc())
        )

    def mark_token_used(self, token_id: str) -> bool:
        """Flip ``used`` false -> true; False when another caller already did (or the row is gone)."""
        res = self.session.execute(
            update(QRToken)
            .where(QRToken.id == token_id, QRToken.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    # audit
    def append_audit_entry(self, *, package_id: str, actor_id: str | None, action: str,
                           payload: dict | None = None, ip: str | None = None,
                           user_agent: str | None = None) -> AuditLog:
        entry = AuditLog(package_id=package_id, actor_id=actor_id, action=action,
                         payload_json=payload, ip=ip, user_agent=user_agent)
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_audit_entries(self, *, action: str | None = None, package_id: str | None = None,
                           limit: int = 50) -> list[AuditLog]:
        stmt = select(AuditLog).order_by(AuditLog.ts.desc(), AuditLog.id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if package_id:
            stmt = stmt.where(AuditLog.package_id == package_id)
        return list(self.session.execute(stmt.limit(limit)).scalars())
