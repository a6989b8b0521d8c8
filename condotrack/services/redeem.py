import logging
from dataclasses import dataclass, asdict
from datetime import datetime

from ..errors import (AlreadyDeliveredError, AlreadyUsedError, ExpiredError,
                      InvalidTokenError, NotFoundError)
from ..models import DELIVERED, QR_VALIDATED
from .audit import record_event
from .tokens import as_naive_utc, isoformat, utcnow

logger = logging.getLogger(__name__)

# Token status as seen by the scanning operator
LIVE = 'live'
USED = 'used'
EXPIRED = 'expired'
INVALID = 'invalid'


@dataclass(frozen=True)
class PackageSummary:
    id: str
    code: str
    carrier: str | None
    recipient_name: str
    state: str
    received_at: str | None
    delivered_at: str | None

    @classmethod
    def of(cls, pkg, state=None, delivered_at=None):
        return cls(
            id=pkg.id,
            code=pkg.code,
            carrier=pkg.carrier,
            recipient_name=pkg.recipient_name,
            state=state or pkg.state,
            received_at=isoformat(pkg.received_at),
            delivered_at=isoformat(delivered_at or pkg.delivered_at),
        )

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class TokenPreview:
    status: str
    expires_at: str | None = None
    seconds_remaining: int = 0
    package: PackageSummary | None = None

    def to_dict(self):
        return {
            'status': self.status,
            'expires_at': self.expires_at,
            'seconds_remaining': self.seconds_remaining,
            'package': self.package.to_dict() if self.package else None,
        }


class QRValidator:
    """Redeems a token at most once, moving its package from pending to delivered."""

    def __init__(self, store, clock=utcnow):
        self.store = store
        self.clock = clock

    def _reject(self, err, secret):
        logger.warning('qr rejected code=%s token=%s...', err.code, secret[:8])
        raise err

    def validate(self, secret: str, actor_id: str | None, *, ip: str | None = None,
                 user_agent: str | None = None) -> PackageSummary:
        now = self.clock()
        with self.store.atomic():
            tok = self.store.find_token_by_secret(secret)
            if tok is None:
                self._reject(InvalidTokenError(), secret)
            # used wins over expired: it is the terminal state reached first
            if tok.used:
                self._reject(AlreadyUsedError(), secret)
            if now > as_naive_utc(tok.expires_at):
                self._reject(ExpiredError(), secret)
            pkg = self.store.find_package(tok.package_id)
            if pkg is None:
                self._reject(NotFoundError(), secret)
            if pkg.state == DELIVERED:
                # a concurrent scan of this same token may have just delivered it
                fresh = self.store.find_token_by_secret(secret)
                if fresh is not None and fresh.used:
                    self._reject(AlreadyUsedError(), secret)
                self._reject(AlreadyDeliveredError(), secret)

            token_id, package_id = tok.id, pkg.id
            summary = PackageSummary.of(pkg, state=DELIVERED, delivered_at=now)
            if not self.store.mark_token_used(token_id):
                # lost the race: a concurrent validate redeemed it, or a re-issue deleted it
                if self.store.find_token_by_secret(secret) is None:
                    self._reject(InvalidTokenError(), secret)
                self._reject(AlreadyUsedError(), secret)
            if not self.store.set_package_delivered(package_id, now):
                # rolls back the token flag with it
                self._reject(AlreadyDeliveredError(), secret)

        logger.info('qr validated package=%s token=%s actor=%s', package_id, token_id, actor_id)
        record_event(self.store, package_id=package_id, actor_id=actor_id, action=QR_VALIDATED,
                     payload={'token_id': token_id, 'validated_at': isoformat(now)},
                     ip=ip, user_agent=user_agent)
        return summary

    def preview(self, secret: str) -> TokenPreview:
        """Read-only status of a presented token; never mutates anything."""
        now = self.clock()
        tok = self.store.find_token_by_secret(secret)
        if tok is None:
            return TokenPreview(status=INVALID)
        expires_at = as_naive_utc(tok.expires_at)
        pkg = self.store.find_package(tok.package_id)
        summary = PackageSummary.of(pkg) if pkg is not None else None
        if tok.used:
            status = USED
        elif now > expires_at:
            status = EXPIRED
        else:
            status = LIVE
        remaining = max(0, int((expires_at - now).total_seconds())) if status == LIVE else 0
        return TokenPreview(status=status, expires_at=isoformat(expires_at),
                            seconds_remaining=remaining, package=summary)
