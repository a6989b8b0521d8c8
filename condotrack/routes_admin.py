from flask import Blueprint, jsonify, request
from .auth import require_role
from .errors import BadRequestError
from .models import ADMIN, AUDIT_ACTIONS
from .services.store import SqlStore
from .services.tokens import isoformat

bp = Blueprint('admin', __name__)

MAX_LIMIT = 500

@bp.get('/logs')
@require_role(ADMIN)
def logs():
    action = request.args.get('action') or None
    if action and action not in AUDIT_ACTIONS:
        raise BadRequestError('unknown action')
    try:
        limit = int(request.args.get('limit') or 50)
    except ValueError:
        raise BadRequestError('limit must be an integer')
    limit = max(1, min(limit, MAX_LIMIT))

    rows = SqlStore().list_audit_entries(action=action, package_id=request.args.get('package_id') or None,
                                         limit=limit)
    return jsonify({
        'ok': True,
        'logs': [{
            'id': e.id,
            'ts': isoformat(e.ts),
            'package_id': e.package_id,
            'actor_id': e.actor_id,
            'action': e.action,
            'payload': e.payload_json,
            'ip': e.ip,
            'user_agent': e.user_agent,
        } for e in rows],
    })
