import os, sys, pytest
# Ensure the backend directory is on path so 'helpdesk' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
import helpdesk
from helpdesk import create_app
from helpdesk.models.registry import load_all_models

metadata = load_all_models()


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'TESTING': True, 'JWT_SECRET_KEY': 'test-secret-key-with-enough-bytes-for-hs256'})
    metadata.create_all(helpdesk.db_engine)
    yield app


@pytest.fixture(autouse=True)
def clean_db(app_instance):
    """Reopen config and ticket numbers are global; every test starts from empty tables."""
    helpdesk.SessionLocal.remove()
    metadata.drop_all(helpdesk.db_engine)
    metadata.create_all(helpdesk.db_engine)
    yield
    helpdesk.SessionLocal.remove()


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
