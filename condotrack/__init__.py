import logging

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix
from sqlalchemy.exc import SQLAlchemyError
from .config import Config, engine_options
from .errors import DeliveryError
from .models import db
from flask_migrate import Migrate
from dotenv import load_dotenv

load_dotenv()


def create_app(overrides: dict | None = None):
    app = Flask(__name__)
    app.config.from_object(Config())
    if overrides:
        app.config.update(overrides)
    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', engine_options(app.config['SQLALCHEMY_DATABASE_URI']))
    _configure_logging(app)
    db.init_app(app)
    Migrate(app, db)
    # Trust reverse proxy headers (Render/Heroku)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    with app.app_context():
        # quickstart; schema changes go through Flask-Migrate
        db.create_all()

    from .routes_public import bp as public_bp
    from .routes_api import bp as api_bp
    from .routes_admin import bp as admin_bp
    app.register_blueprint(public_bp)
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    @app.errorhandler(DeliveryError)
    def delivery_error(e: DeliveryError):
        return jsonify(e.to_dict()), e.status

    @app.errorhandler(SQLAlchemyError)
    def store_error(e: SQLAlchemyError):
        app.logger.exception('data store failure')
        db.session.rollback()
        return jsonify({'error': 'INTERNAL', 'message': 'data store unavailable'}), 500

    @app.get('/health')
    def health():
        return {'ok': True}

    return app


def _configure_logging(app: Flask):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')), logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger(__name__).setLevel(level)
    app.logger.setLevel(level)
