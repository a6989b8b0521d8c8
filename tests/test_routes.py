import base64

from condotrack.models import db, AuditLog, Package, QRToken, DELIVERED, PENDING


def _generate(client, package_id='P1', **kw):
    return client.post('/api/qr/generate', json={'package_id': package_id}, **kw)


def test_health_ok(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json['ok'] is True


def test_login_and_me(client, login_as):
    r = client.get('/api/auth/me')
    assert r.status_code == 401
    assert r.json['error'] == 'UNAUTHORIZED'

    login_as('ana@example.com')
    r = client.get('/api/auth/me')
    assert r.status_code == 200
    assert r.json['user']['role'] == 'residente'

    client.delete('/api/auth/me')
    assert client.get('/api/auth/me').status_code == 401


def test_login_rejects_bad_password_and_inactive(client):
    r = client.post('/api/auth/login', json={'email': 'admin@example.com', 'password': 'nope'})
    assert r.status_code == 401
    r = client.post('/api/auth/login', json={'email': 'old@example.com', 'password': 'pw'})
    assert r.status_code == 401
    r = client.post('/api/auth/login', json={})
    assert r.status_code == 400


def test_generate_requires_session(client):
    r = _generate(client)
    assert r.status_code == 401


def test_generate_json(conserje, app):
    r = _generate(conserje)
    assert r.status_code == 200
    body = r.json
    assert body['package_id'] == 'P1'
    assert len(body['token']) == 64
    assert body['redeem_url'] == f"https://condo.example/qr/validate?token={body['token']}"
    assert body['expires_at'].endswith('Z')
    png = base64.b64decode(body['qr_data_url'].split(',', 1)[1])
    assert png.startswith(b'\x89PNG')
    with app.app_context():
        toks = QRToken.query.filter_by(package_id='P1').all()
        assert [t.token for t in toks] == [body['token']]
        assert toks[0].used is False
        assert db.session.get(Package, 'P1').state == PENDING
        [entry] = AuditLog.query.filter_by(action='qr_issued').all()
        assert entry.actor_id == 'u-conserje'
        assert entry.payload_json == {'expires_at': body['expires_at']}


def test_generate_png_and_svg(conserje):
    r = _generate(conserje, headers={'Accept': 'image/png'})
    assert r.status_code == 200
    assert r.mimetype == 'image/png'
    assert r.data.startswith(b'\x89PNG')

    r = conserje.post('/api/qr/generate?format=svg', json={'package_id': 'P1'})
    assert r.status_code == 200
    assert r.mimetype == 'image/svg+xml'
    assert b'<svg' in r.data


def test_generate_missing_body_and_unknown_package(conserje):
    r = conserje.post('/api/qr/generate', json={})
    assert r.status_code == 400
    assert r.json['error'] == 'BAD_REQUEST'
    r = _generate(conserje, 'missing')
    assert r.status_code == 404
    assert r.json['error'] == 'NOT_FOUND'


def test_resident_generates_only_own_package(login_as):
    client = login_as('ana@example.com')
    assert _generate(client, 'P1').status_code == 200
    r = _generate(client, 'P2')
    assert r.status_code == 403
    assert r.json['error'] == 'FORBIDDEN'


def test_full_delivery_flow(conserje, app):
    token = _generate(conserje).json['token']

    r = conserje.post('/api/qr/validate', json={'token': token})
    assert r.status_code == 200
    pkg = r.json['package']
    assert pkg['id'] == 'P1'
    assert pkg['code'] == 'CT-0001'
    assert pkg['carrier'] == 'Chilexpress'
    assert pkg['recipient_name'] == 'Ana Rojas'
    assert pkg['state'] == DELIVERED
    assert pkg['delivered_at']

    r = conserje.post('/api/qr/validate', json={'token': token})
    assert r.status_code == 409
    assert r.json['error'] == 'ALREADY_USED'

    r = _generate(conserje)
    assert r.status_code == 409
    assert r.json['error'] == 'INVALID_STATE'

    with app.app_context():
        p = db.session.get(Package, 'P1')
        assert p.state == DELIVERED
        assert p.delivered_at is not None
        assert QRToken.query.filter_by(token=token).one().used is True
        validated = AuditLog.query.filter_by(action='qr_validated').all()
        assert len(validated) == 1
        assert validated[0].actor_id == 'u-conserje'


def test_reissue_invalidates_previous(conserje):
    first = _generate(conserje, 'P3').json['token']
    second = _generate(conserje, 'P3').json['token']
    r = conserje.post('/api/qr/validate', json={'token': first})
    assert r.status_code == 400
    assert r.json['error'] == 'INVALID_TOKEN'
    assert conserje.post('/api/qr/validate', json={'token': second}).status_code == 200


def test_expired_token_over_http(conserje, app):
    token = _generate(conserje, 'P2').json['token']
    with app.app_context():
        tok = QRToken.query.filter_by(token=token).one()
        tok.expires_at = tok.expires_at.replace(year=2000)
        db.session.commit()
    r = conserje.post('/api/qr/validate', json={'token': token})
    assert r.status_code == 409
    assert r.json['error'] == 'EXPIRED'


def test_resident_cannot_validate(login_as):
    client = login_as('ana@example.com')
    token = _generate(client, 'P1').json['token']
    r = client.post('/api/qr/validate', json={'token': token})
    assert r.status_code == 403


def test_validate_requires_token(conserje):
    r = conserje.post('/api/qr/validate', json={})
    assert r.status_code == 400
    assert r.json['error'] == 'BAD_REQUEST'


def test_validate_rate_limited(conserje):
    codes = [conserje.post('/api/qr/validate', json={'token': f'{i:064x}'}).status_code for i in range(6)]
    assert codes[:5] == [400] * 5
    assert codes[5] == 429


def test_active_token(conserje, login_as):
    assert conserje.get('/api/qr/active/P1').status_code == 404
    _generate(conserje, 'P1')
    r = conserje.get('/api/qr/active/P1')
    assert r.status_code == 200
    assert 1700 < r.json['seconds_remaining'] <= 1800

    other = login_as('luis@example.com')
    assert other.get('/api/qr/active/P1').status_code == 403


def test_redemption_url_preview(conserje):
    body = _generate(conserje).json
    path = body['redeem_url'].replace('https://condo.example', '')
    r = conserje.get(path)
    assert r.status_code == 200
    assert r.json['status'] == 'live'
    assert r.json['package']['id'] == 'P1'
    assert r.json['package']['state'] == PENDING

    assert conserje.get('/qr/validate?token=' + '0' * 64).json['status'] == 'invalid'
    assert conserje.get('/qr/validate').status_code == 400


def test_decode_requires_image(conserje):
    r = conserje.post('/api/qr/decode', data={})
    assert r.status_code == 400
    assert r.json['message'] == 'missing_file'


def test_admin_logs(client, login_as):
    login_as('conserje@example.com')
    token = _generate(client).json['token']
    client.post('/api/qr/validate', json={'token': token})
    assert client.get('/admin/logs').status_code == 403

    login_as('admin@example.com')
    r = client.get('/admin/logs')
    assert r.status_code == 200
    assert sorted(e['action'] for e in r.json['logs']) == ['qr_issued', 'qr_validated']

    r = client.get('/admin/logs?action=qr_validated&package_id=P1')
    [entry] = r.json['logs']
    assert entry['actor_id'] == 'u-conserje'
    assert entry['payload']['token_id']

    assert client.get('/admin/logs?action=bogus').status_code == 400
    assert client.get('/admin/logs?limit=x').status_code == 400
