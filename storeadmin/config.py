import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def build_engine_options(database_uri, timeout_seconds):
    # Bound every statement so a stuck request aborts its transaction.
    if database_uri.startswith('sqlite'):
        return {'connect_args': {'timeout': timeout_seconds}}
    if database_uri.startswith('postgresql'):
        return {
            'pool_timeout': timeout_seconds,
            'connect_args': {
                'options': f'-c statement_timeout={timeout_seconds * 1000}'
            },
        }
    if database_uri.startswith('mysql'):
        return {
            'pool_timeout': timeout_seconds,
            'connect_args': {
                'read_timeout': timeout_seconds,
                'write_timeout': timeout_seconds,
            },
        }
    return {}


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///storeadmin.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')

    # Alembic revisions managed by Flask-Migrate
    MIGRATIONS_DIR = os.path.join(BASE_DIR, 'migrations')

    DB_TIMEOUT_SECONDS = int(os.environ.get('DB_TIMEOUT_SECONDS', '15'))
    SQLALCHEMY_ENGINE_OPTIONS = build_engine_options(
        SQLALCHEMY_DATABASE_URI, DB_TIMEOUT_SECONDS)

    # Image uploads (product and KYC documents)
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(
        BASE_DIR, 'static', 'uploads')
    ASSET_BASE_URL = os.environ.get('ASSET_BASE_URL', '/static/uploads')
    ALLOWED_IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png', 'webp')
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # Pagination configuration
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    # Order pricing
    ORDER_TAX_RATE = Decimal('0.10')
    ORDER_SHIPPING_FEE = Decimal('50.00')

    # Defaults reported by the system settings endpoint
    SITE_NAME = os.environ.get('SITE_NAME', 'Store Admin Panel')
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@example.com')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
