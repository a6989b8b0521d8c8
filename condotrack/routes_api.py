from flask import Blueprint, request, jsonify, current_app, send_file, Response
from werkzeug.security import check_password_hash
import io
import logging
from urllib.parse import parse_qs, urlparse

from .auth import current_user, require_role
from .errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from .models import User, ADMIN, CONSERJE, RESIDENTE, STAFF_ROLES
from .services.issue import QRIssuer
from .services.rate_limit import check_rate_ip
from .services.redeem import QRValidator
from .services.store import SqlStore
from .services.tokens import isoformat, seconds_remaining, sign_session_jwt

bp = Blueprint('api', __name__)
logger = logging.getLogger(__name__)


def issuer() -> QRIssuer:
    return QRIssuer(SqlStore(), current_app.config['BASE_URL'], current_app.config['QR_EXPIRY_MINUTES'])

def validator() -> QRValidator:
    return QRValidator(SqlStore())

def client_meta():
    return {'ip': request.remote_addr, 'user_agent': request.headers.get('User-Agent')}

def _body_field(name: str) -> str:
    data = request.get_json(silent=True) or {}
    value = data.get(name)
    if not value or not isinstance(value, str):
        raise BadRequestError(f'{name} required')
    return value.strip()

def _check_package_access(package_id: str):
    """Staff may act on any package; residents only on their own."""
    user = current_user()
    if user.role in STAFF_ROLES:
        return
    pkg = SqlStore().find_package(package_id)
    if pkg is None:
        raise NotFoundError()
    if pkg.resident_id != user.id:
        raise ForbiddenError()


# --- session (identity provider)

@bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').lower().strip()
    password = data.get('password') or ''
    if not email or not password:
        raise BadRequestError('email and password required')
    user = User.query.filter_by(email=email).first()
    if user is None or not user.active or not user.password_hash \
            or not check_password_hash(user.password_hash, password):
        logger.info('login failed for %s', email)
        raise UnauthorizedError('invalid credentials')
    token = sign_session_jwt(user.id, user.email, user.role)
    resp = jsonify({'ok': True, 'user': _user_dict(user)})
    resp.set_cookie(
        current_app.config['AUTH_COOKIE_NAME'], token,
        httponly=True, samesite='Lax', secure=current_app.config['SESSION_COOKIE_SECURE'],
        max_age=current_app.config['SESSION_DAYS'] * 86400,
    )
    return resp

@bp.get('/auth/me')
@require_role()
def me():
    return jsonify({'ok': True, 'user': _user_dict(current_user())})

@bp.delete('/auth/me')
def logout():
    resp = jsonify({'ok': True})
    resp.delete_cookie(current_app.config['AUTH_COOKIE_NAME'])
    return resp

def _user_dict(user: User):
    return {'id': user.id, 'name': user.name, 'email': user.email, 'role': user.role}


# --- QR delivery

@bp.post('/qr/generate')
@require_role(ADMIN, CONSERJE, RESIDENTE)
def generate_qr():
    package_id = _body_field('package_id')
    _check_package_access(package_id)
    svc = issuer()
    issued = svc.issue(package_id, current_user().id, **client_meta())

    if request.args.get('format') == 'svg':
        return Response(svc.render_svg(issued.secret), mimetype='image/svg+xml',
                        headers={'Cache-Control': 'no-store'})
    accept = request.headers.get('Accept', '')
    if 'image/png' in accept:
        return send_file(
            io.BytesIO(issued.image_png), mimetype='image/png', as_attachment=False,
            download_name=f"qr_{package_id}.png", etag=False, max_age=0,
        )
    return jsonify({'ok': True, **issued.to_dict()})

@bp.get('/qr/active/<package_id>')
@require_role(ADMIN, CONSERJE, RESIDENTE)
def active_qr(package_id: str):
    _check_package_access(package_id)
    tok = issuer().active_token(package_id)
    if tok is None:
        raise NotFoundError('no active code for this package')
    return jsonify({
        'ok': True,
        'package_id': package_id,
        'expires_at': isoformat(tok.expires_at),
        'seconds_remaining': seconds_remaining(tok.expires_at),
    })

@bp.post('/qr/validate')
@require_role(ADMIN, CONSERJE)
def validate_qr():
    cfg = current_app.config
    check_rate_ip(request.remote_addr or '0.0.0.0', 'qr.validate',
                  limit=cfg['VALIDATE_RATE_LIMIT'], window=cfg['VALIDATE_RATE_WINDOW'])
    secret = _body_field('token')
    summary = validator().validate(secret, current_user().id, **client_meta())
    return jsonify({'ok': True, 'message': 'delivery confirmed', 'package': summary.to_dict()})

@bp.post('/qr/decode')
@require_role(ADMIN, CONSERJE)
def decode_qr():
    # Accept multipart/form-data with file field 'image'
    if 'image' not in request.files:
        raise BadRequestError('missing_file')
    data = request.files['image'].read()
    if not data:
        raise BadRequestError('empty_file')
    import numpy as np
    import cv2
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if img is None:
        raise BadRequestError('bad_image')
    val, _points, _ = cv2.QRCodeDetector().detectAndDecode(img)
    if not val:
        return jsonify({'ok': False})
    return jsonify({'ok': True, 'raw': val, 'token': _token_from_raw(val)})

def _token_from_raw(raw: str) -> str:
    """A scanned payload is either the redemption URL or the bare secret."""
    if '://' in raw:
        return (parse_qs(urlparse(raw).query).get('token') or [''])[0]
    return raw.strip()
