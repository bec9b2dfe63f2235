import datetime

import pytest

from invoicify.app import create_app
from invoicify.auth import provision_user, to_current_user
from invoicify.models import db, TIER_PRO
from invoicify.store import stores_for
from invoicify.tiers import TierPolicy


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'PUBLIC_URL': 'http://testserver',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def db_session(app):
    return db.session


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def free_profile(db_session):
    return provision_user('free@example.com', full_name='Free User', company_name='Free Co')


@pytest.fixture
def pro_profile(db_session):
    return provision_user('pro@example.com', full_name='Pro User', company_name='Pro Co', tier=TIER_PRO)


@pytest.fixture
def free_user(free_profile):
    return to_current_user(free_profile)


@pytest.fixture
def pro_user(pro_profile):
    return to_current_user(pro_profile)


@pytest.fixture
def free_stores(free_user):
    return stores_for(free_user)


@pytest.fixture
def pro_stores(pro_user):
    return stores_for(pro_user)


@pytest.fixture
def free_headers(free_profile):
    return {'Authorization': f'Bearer {free_profile.api_token}'}


@pytest.fixture
def pro_headers(pro_profile):
    return {'Authorization': f'Bearer {pro_profile.api_token}'}


@pytest.fixture
def policy():
    return TierPolicy()


@pytest.fixture
def notifications():
    """Collects (level, message) pairs sent by the sync hooks."""
    return []


@pytest.fixture
def notify(notifications):
    def notify(level, message):
        notifications.append((level, message))
    return notify


@pytest.fixture
def invoice_fields():
    """Factory for a valid invoice form payload."""
    def make(client_id, **overrides):
        fields = {
            'client_id': client_id,
            'issue_date': datetime.date.today().isoformat(),
            'due_date': (datetime.date.today() + datetime.timedelta(days=14)).isoformat(),
            'tax_rate': 20,
            'notes': 'Thank you',
        }
        fields.update(overrides)
        return fields
    return make


@pytest.fixture
def line_items():
    return [
        {'description': 'Design work', 'quantity': 2, 'rate': 100},
        {'description': 'Hosting', 'quantity': 1, 'rate': 50},
    ]
