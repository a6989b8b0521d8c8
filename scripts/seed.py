import os, sys, pathlib
# Ensure project root is on PYTHONPATH when running directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from werkzeug.security import generate_password_hash
from condotrack import create_app
from condotrack.models import db, User, Package, ADMIN, CONSERJE, RESIDENTE, RECEIVED
from condotrack.services.audit import record_event
from condotrack.services.store import SqlStore

PASSWORD = os.environ.get('SEED_PASSWORD', 'condotrack')

app = create_app()
with app.app_context():
    pw = generate_password_hash(PASSWORD)
    admin = User(name='Administración', email='admin@condotrack.local', password_hash=pw, role=ADMIN)
    conserje = User(name='Conserje Turno Día', email='conserje@condotrack.local', password_hash=pw, role=CONSERJE)
    residente = User(name='Ana Rojas', email='ana@condotrack.local', password_hash=pw, role=RESIDENTE)
    db.session.add_all([admin, conserje, residente])
    db.session.flush()
    pkg = Package(code='CT-0001', carrier='Chilexpress', recipient_name=residente.name, resident_id=residente.id)
    db.session.add(pkg)
    db.session.commit()
    record_event(SqlStore(), package_id=pkg.id, actor_id=conserje.id, action=RECEIVED,
                 payload={'code': pkg.code, 'carrier': pkg.carrier})

    print('users:', ', '.join(u.email for u in (admin, conserje, residente)), f'(password {PASSWORD!r})')
    print('package_id:', pkg.id)
