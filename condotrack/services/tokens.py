import secrets, jwt
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode
from flask import current_app

SECRET_BYTES = 32  # 256 bits, 64 hex chars


def utcnow() -> datetime:
    """Naive UTC now; the store keeps naive UTC timestamps (SQLite drops tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def isoformat(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return as_naive_utc(dt).isoformat(timespec='seconds') + 'Z'


def seconds_remaining(expires_at: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return max(0, int((as_naive_utc(expires_at) - now).total_seconds()))


# QR redemption secret
def new_secret() -> str:
    return secrets.token_hex(SECRET_BYTES)

def redeem_url(base_url: str, secret: str) -> str:
    return f"{base_url.rstrip('/')}/qr/validate?{urlencode({'token': secret})}"


# Session JWT carried in the auth cookie
def sign_session_jwt(user_id: str, email: str, role: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        'sub': user_id,
        'email': email,
        'role': role,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(days=current_app.config['SESSION_DAYS'])).timestamp()),
    }
    key = current_app.config['JWT_SECRET']
    return jwt.encode(payload, key, algorithm=current_app.config['JWT_ALG'])

def decode_session_jwt(token: str) -> dict | None:
    try:
        return jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=[current_app.config['JWT_ALG']])
    except jwt.InvalidTokenError:
        return None
