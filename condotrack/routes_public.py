from flask import Blueprint, jsonify, request
from .auth import require_role
from .errors import BadRequestError
from .models import ADMIN, CONSERJE
from .routes_api import validator

bp = Blueprint('public', __name__)

@bp.get('/qr/validate')
@require_role(ADMIN, CONSERJE)
def validate_page():
    # Target of the scanned URL: show what would be redeemed; confirmation is POST /api/qr/validate
    secret = request.args.get('token', '').strip()
    if not secret:
        raise BadRequestError('token required')
    return jsonify({'ok': True, **validator().preview(secret).to_dict()})
