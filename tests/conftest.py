import os
import tempfile
from types import SimpleNamespace
import pytest
from config import TestingConfig
from labtrack import create_app
from labtrack.extensions import db
from labtrack.models import AssetType, Lab, User

PASSWORD = 'secret123'


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    # Create a temporary file to isolate the database for each test
    db_fd, db_path = tempfile.mkstemp()

    app = create_app(TestingConfig, {
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
    })

    with app.app_context():
        init_test_data()

    yield app

    # Close and remove the temporary database
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def app_ctx(app):
    """Run service-level tests inside an application context."""
    with app.app_context():
        yield


@pytest.fixture
def ids(app):
    """Primary keys of the seeded rows."""
    with app.app_context():
        def user(email):
            return User.query.filter_by(email=email).one().id

        def lab(identifier):
            return Lab.query.filter_by(lab_identifier=identifier).one().id

        def asset_type(identifier):
            return AssetType.query.filter_by(identifier=identifier).one().id

        return SimpleNamespace(
            hod=user('hod@test.com'),
            incharge_a=user('incharge.a@test.com'),
            assistant_a=user('assistant.a@test.com'),
            incharge_b=user('incharge.b@test.com'),
            assistant_b=user('assistant.b@test.com'),
            lab_a=lab('CL1'),
            lab_b=lab('DSL'),
            pc=asset_type('PC'),
            printer=asset_type('PR'),
        )


@pytest.fixture
def users(app_ctx, ids):
    """Seeded users loaded into the current session."""
    return SimpleNamespace(
        hod=db.session.get(User, ids.hod),
        incharge_a=db.session.get(User, ids.incharge_a),
        assistant_a=db.session.get(User, ids.assistant_a),
        incharge_b=db.session.get(User, ids.incharge_b),
        assistant_b=db.session.get(User, ids.assistant_b),
    )


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def login(client, email, password=PASSWORD):
    return client.post('/auth/login', data={
        'email': email,
        'password': password
    })


@pytest.fixture
def hod_client(app):
    """A test client that is authenticated as the HOD."""
    client = app.test_client()
    login(client, 'hod@test.com')
    return client


@pytest.fixture
def assistant_client(app):
    """A test client that is authenticated as the lab A assistant."""
    client = app.test_client()
    login(client, 'assistant.a@test.com')
    return client


@pytest.fixture
def incharge_client(app):
    """A test client that is authenticated as the lab A incharge."""
    client = app.test_client()
    login(client, 'incharge.a@test.com')
    return client


def make_asset_payload(lab_id, asset_type_id, **overrides):
    payload = {
        'date': '2024-01-15',
        'name_of_supply': 'Dell OptiPlex 7090',
        'asset_type': asset_type_id,
        'invoice_number': 'INV-001',
        'description': 'Desktop computer',
        'rate': '55000.00',
        'remark': '',
        'is_consumable': False,
        'allocated_lab': lab_id,
    }
    payload.update(overrides)
    return payload


def init_test_data():
    """Initialize test data."""
    lab_a = Lab(
        lab_identifier='CL1',
        name='Computer Lab 1',
        description='Programming lab',
        location='Room 101'
    )
    lab_b = Lab(
        lab_identifier='DSL',
        name='Data Science Lab',
        description='GPU workstations',
        location='Room 201'
    )
    db.session.add_all([lab_a, lab_b])
    db.session.add_all([
        AssetType(name='Computer', identifier='PC'),
        AssetType(name='Printer', identifier='PR'),
    ])
    db.session.flush()

    staff = [
        ('hod@test.com', 'Head of Department', User.HOD, None),
        ('incharge.a@test.com', 'Incharge A', User.LAB_INCHARGE, lab_a.id),
        ('assistant.a@test.com', 'Assistant A', User.LAB_ASSISTANT, lab_a.id),
        ('incharge.b@test.com', 'Incharge B', User.LAB_INCHARGE, lab_b.id),
        ('assistant.b@test.com', 'Assistant B', User.LAB_ASSISTANT, lab_b.id),
    ]
    for email, name, role, lab_id in staff:
        user = User(email=email, name=name, role=role, lab_id=lab_id)
        user.set_password(PASSWORD)
        db.session.add(user)

    db.session.commit()
