import pytest
from werkzeug.security import generate_password_hash

from condotrack import create_app
from condotrack.models import db, Package, User, ADMIN, CONSERJE, RESIDENTE


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'JWT_SECRET': 'test-jwt-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path/'test.db'}",
        'BASE_URL': 'https://condo.example',
        'USE_REDIS': False,
        'SESSION_COOKIE_SECURE': False,
        'VALIDATE_RATE_LIMIT': 5,
        'VALIDATE_RATE_WINDOW': 3600,
    })
    with app.app_context():
        pw = generate_password_hash('pw')
        db.session.add_all([
            User(id='u-admin', name='Admin', email='admin@example.com', password_hash=pw, role=ADMIN),
            User(id='u-conserje', name='Pedro', email='conserje@example.com', password_hash=pw, role=CONSERJE),
            User(id='u-res', name='Ana Rojas', email='ana@example.com', password_hash=pw, role=RESIDENTE),
            User(id='u-res2', name='Luis Soto', email='luis@example.com', password_hash=pw, role=RESIDENTE),
            User(id='u-off', name='Old', email='old@example.com', password_hash=pw, role=CONSERJE, active=False),
        ])
        db.session.add_all([
            Package(id='P1', code='CT-0001', carrier='Chilexpress', recipient_name='Ana Rojas', resident_id='u-res'),
            Package(id='P2', code='CT-0002', carrier='Starken', recipient_name='Luis Soto', resident_id='u-res2'),
            Package(id='P3', code='CT-0003', carrier='Correos', recipient_name='Ana Rojas', resident_id='u-res'),
        ])
        db.session.commit()
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login_as(client):
    def login(email, password='pw'):
        r = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert r.status_code == 200, r.json
        return client
    return login


@pytest.fixture()
def conserje(login_as):
    return login_as('conserje@example.com')
