import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..errors import InvalidStateError, NotFoundError
from ..models import PENDING, QR_ISSUED
from .audit import record_event
from .qr import make_qr_bytes, make_qr_svg, to_data_uri
from .tokens import isoformat, new_secret, redeem_url, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_MINUTES = 30


@dataclass(frozen=True)
class IssuedQR:
    token_id: str
    package_id: str
    secret: str
    expires_at: datetime
    redeem_url: str
    image_png: bytes

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.image_png)

    def to_dict(self):
        return {
            'package_id': self.package_id,
            'token': self.secret,
            'expires_at': isoformat(self.expires_at),
            'redeem_url': self.redeem_url,
            'qr_data_url': self.data_uri,
        }


class QRIssuer:
    """Mints the single live redemption token for a pending package."""

    def __init__(self, store, base_url: str, expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
                 clock=utcnow):
        self.store = store
        self.base_url = base_url
        self.validity = timedelta(minutes=expiry_minutes)
        self.clock = clock

    def issue(self, package_id: str, actor_id: str | None, *, ip: str | None = None,
              user_agent: str | None = None) -> IssuedQR:
        with self.store.atomic():
            pkg = self.store.find_package(package_id, for_update=True)
            if pkg is None:
                raise NotFoundError()
            if pkg.state != PENDING:
                raise InvalidStateError()
            # supersede every earlier token before the new one exists
            self.store.delete_tokens_for_package(package_id)
            secret = new_secret()
            expires_at = self.clock() + self.validity
            tok = self.store.create_token(package_id, secret, expires_at)
            token_id = tok.id

        url = redeem_url(self.base_url, secret)
        png = make_qr_bytes(url)
        logger.info('qr issued package=%s token=%s expires_at=%s', package_id, token_id, isoformat(expires_at))
        record_event(self.store, package_id=package_id, actor_id=actor_id, action=QR_ISSUED,
                     payload={'expires_at': isoformat(expires_at)}, ip=ip, user_agent=user_agent)
        return IssuedQR(token_id=token_id, package_id=package_id, secret=secret,
                        expires_at=expires_at, redeem_url=url, image_png=png)

    def render_svg(self, secret: str) -> str:
        return make_qr_svg(redeem_url(self.base_url, secret))

    def active_token(self, package_id: str):
        """The unused, unexpired token for a package, or None."""
        return self.store.find_live_token(package_id, self.clock())
