import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///condotrack.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET = os.environ.get('JWT_SECRET')
    JWT_ALG = 'HS256'
    SESSION_DAYS = int(os.environ.get('SESSION_DAYS', '7'))
    AUTH_COOKIE_NAME = os.environ.get('AUTH_COOKIE_NAME', 'auth-token')
    SESSION_COOKIE_SECURE = os.environ.get('ENV', 'development') in ('prod', 'production')
    BASE_URL = os.environ.get('BASE_URL', 'http://localhost:3000')
    QR_EXPIRY_MINUTES = int(os.environ.get('QR_EXPIRY_MINUTES', '30'))
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    USE_REDIS = os.environ.get('USE_REDIS', '1').lower() not in ('0', 'false', 'no')
    VALIDATE_RATE_LIMIT = int(os.environ.get('VALIDATE_RATE_LIMIT', '20'))
    VALIDATE_RATE_WINDOW = int(os.environ.get('VALIDATE_RATE_WINDOW', '60'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    def __init__(self):
        # Optional fallbacks to support Secret Files on Render (/etc/secrets)
        if (not self.SECRET_KEY) or self.SECRET_KEY == 'dev':
            try:
                with open('/etc/secrets/secret_key', 'r') as f:
                    self.SECRET_KEY = f.read().strip()
            except OSError:
                pass
        if not self.JWT_SECRET:
            for p in ('/etc/secrets/jwt_secret', 'jwt_secret'):
                try:
                    with open(p, 'r') as f:
                        self.JWT_SECRET = f.read().strip()
                        break
                except OSError:
                    continue
        # Session tokens fall back to the Flask secret
        if not self.JWT_SECRET:
            self.JWT_SECRET = self.SECRET_KEY


def engine_options(uri: str) -> dict:
    """Pin Postgres sessions to UTC; timestamps are written as naive UTC."""
    if uri.startswith('postgres'):
        return {'connect_args': {'options': '-c timezone=utc'}}
    return {}
