import os
import sys

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def get_data_dir():
    if getattr(sys, 'frozen', False):
        return os.path.join(os.path.dirname(sys.executable), 'data')
    # In production (Docker), use the mapped 'data' volume
    if os.environ.get('FLASK_ENV') == 'production':
        return os.path.join('/app', 'data')
    return os.path.join(PACKAGE_DIR, 'data')


def get_db_path():
    return os.path.join(get_data_dir(), 'invoices.db')


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', f'sqlite:///{get_db_path()}')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Free tier limits; pro tier is unlimited
    FREE_TIER_CLIENT_LIMIT = int(os.environ.get('FREE_TIER_CLIENT_LIMIT', '3'))
    FREE_TIER_INVOICES_PER_MONTH = int(os.environ.get('FREE_TIER_INVOICES_PER_MONTH', '10'))

    INVOICES_PAGE_SIZE = int(os.environ.get('INVOICES_PAGE_SIZE', '20'))
    INVOICE_NUMBER_PREFIX = 'INV-'
    DEFAULT_TAX_RATE = float(os.environ.get('DEFAULT_TAX_RATE', '20'))
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', '$')

    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(get_data_dir(), 'uploads'))
    PUBLIC_URL = os.environ.get('APP_URL', 'http://localhost:5000')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
