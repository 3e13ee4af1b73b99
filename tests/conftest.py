import pytest

from qms import create_app, database
from qms.models import UserRole
from qms.services.auth_service import register_user, issue_token
from qms.services.client_service import create_client


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    return create_app('config.TestingConfig')


@pytest.fixture(autouse=True)
def db(app):
    """Fresh schema for every test, inside an application context."""
    with app.app_context():
        database.create_all()
        yield
        database.get_session().remove()
        database.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    return database.get_session()


@pytest.fixture(scope='function')
def admin_user(session):
    return register_user(session, 'admin@test.com', 'Admin User', 'password123', role=UserRole.ADMIN.value)


@pytest.fixture(scope='function')
def regular_user(session):
    return register_user(session, 'jane@test.com', 'Jane Smith', 'password123')


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return {'Authorization': f'Bearer {issue_token(admin_user)}'}


@pytest.fixture(scope='function')
def auth_headers(regular_user):
    return {'Authorization': f'Bearer {issue_token(regular_user)}'}


@pytest.fixture(scope='function')
def acme(session):
    """A client with company details."""
    return create_client(session, {
        'name': 'John Smith',
        'email': 'john@acme.com',
        'phone': '+250 788 000 000',
        'company': 'Acme Corporation',
        'address': '1 Main Street',
    })


@pytest.fixture(scope='function')
def acme_id(acme):
    return acme.id


@pytest.fixture(scope='function')
def quotation_payload():
    """Builder for a two-line quotation request body (6500 subtotal)."""
    def build(client_id, **overrides):
        payload = {
            'clientId': client_id,
            'currency': 'USD',
            'taxRate': 0.18,
            'items': [
                {'description': 'Website Development', 'quantity': 1, 'unitPrice': 5000, 'category': 'services'},
                {'description': 'SEO Optimization', 'quantity': 1, 'unitPrice': 1500, 'category': 'services'},
            ],
        }
        payload.update(overrides)
        return payload
    return build
