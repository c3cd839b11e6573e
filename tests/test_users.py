import pytest
from conftest import make_asset_payload
from labtrack.errors import NotFoundError, PermissionDeniedError, WorkflowError
from labtrack.extensions import db
from labtrack.models import ActivityLog, Asset, Notification, User
from labtrack.services import users as user_service
from labtrack.services.assets import create_asset


def test_list_users_filters(users, ids):
    def listed(**filters):
        return [user.email for user in user_service.list_users(filters)]

    assert len(listed()) == 5
    assert listed(role=User.LAB_INCHARGE) == ['incharge.a@test.com', 'incharge.b@test.com']
    assert listed(lab=ids.lab_b) == ['assistant.b@test.com', 'incharge.b@test.com']
    assert listed(search='head') == ['hod@test.com']

    user_service.set_user_active(ids.assistant_b, False, users.hod)
    assert listed(is_active='false') == ['assistant.b@test.com']


def test_create_user(users, ids):
    user = user_service.create_user({
        'email': 'New.Incharge@test.com',
        'name': 'New Incharge',
        'password': 'pw12345',
        'role': User.LAB_INCHARGE,
        'lab_id': ids.lab_b
    }, users.hod)

    assert user.email == 'new.incharge@test.com'
    assert user.check_password('pw12345')

    log = ActivityLog.query.filter_by(entity_type='user_profile', action_type='insert').one()
    assert log.user_id == users.hod.id
    assert 'password_hash' not in log.new_values


def test_create_user_rules(users, ids):
    payload = {'email': 'x@test.com', 'name': 'X', 'password': 'pw', 'lab_id': ids.lab_a}
    with pytest.raises(PermissionDeniedError):
        user_service.create_user(payload, users.incharge_a)
    with pytest.raises(WorkflowError):
        user_service.create_user(dict(payload, email='HOD@test.com'), users.hod)
    with pytest.raises(WorkflowError):
        user_service.create_user(dict(payload, lab_id=None), users.hod)
    with pytest.raises(WorkflowError):
        user_service.create_user(dict(payload, password=''), users.hod)
    with pytest.raises(NotFoundError):
        user_service.create_user(dict(payload, lab_id='missing'), users.hod)
    assert User.query.count() == 5


def test_update_user_role_and_lab(users, ids):
    updated = user_service.update_user(ids.assistant_a, {
        'role': User.LAB_INCHARGE,
        'lab_id': ids.lab_b,
        'name': 'Promoted'
    }, users.hod)

    assert updated.role == User.LAB_INCHARGE
    assert updated.lab_id == ids.lab_b
    assert updated.name == 'Promoted'

    log = ActivityLog.query.filter_by(entity_type='user_profile', action_type='update').one()
    assert log.changes['role'] == {'old': User.LAB_ASSISTANT, 'new': User.LAB_INCHARGE}
    assert {'role', 'lab_id', 'name'} <= set(log.changes)
    assert 'email' not in log.changes


def test_update_user_password(users, ids):
    user_service.update_user(ids.assistant_a, {'password': 'changed1'}, users.hod)
    assert db.session.get(User, ids.assistant_a).check_password('changed1')

    log = ActivityLog.query.filter_by(entity_type='user_profile', action_type='update').one()
    assert log.extra['password_changed'] is True
    assert 'password_hash' not in log.changes


def test_update_user_rules(users, ids):
    with pytest.raises(PermissionDeniedError):
        user_service.update_user(ids.assistant_a, {'name': 'x'}, users.incharge_a)
    with pytest.raises(WorkflowError):
        user_service.update_user(ids.assistant_a, {'email': 'incharge.a@test.com'}, users.hod)
    with pytest.raises(WorkflowError):
        user_service.update_user(ids.assistant_a, {'lab_id': ''}, users.hod)
    with pytest.raises(WorkflowError):
        user_service.update_user(ids.hod, {'role': User.LAB_ASSISTANT, 'lab_id': ids.lab_a}, users.hod)
    with pytest.raises(WorkflowError):
        user_service.set_user_active(ids.hod, False, users.hod)
    with pytest.raises(ValueError):
        user_service.update_user(ids.assistant_a, {'role': 'Janitor'}, users.hod)
    db.session.rollback()

    # moving an assistant to HOD drops the lab requirement
    hod = user_service.update_user(ids.assistant_a, {'role': User.HOD, 'lab_id': ''}, users.hod)
    assert hod.lab_id is None


def test_deactivated_user_cannot_log_in(app, ids, users):
    user_service.set_user_active(ids.assistant_a, False, users.hod)
    client = app.test_client()
    response = client.post('/auth/login', data={
        'email': 'assistant.a@test.com', 'password': 'secret123'
    })
    assert response.status_code == 200
    assert b'Invalid email or password' in response.data


def test_delete_user(users, ids):
    asset = create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_a)
    asset_id = asset.id

    user_service.delete_user(ids.assistant_a, users.hod)

    assert db.session.get(User, ids.assistant_a) is None
    assert db.session.get(Asset, asset_id) is not None
    assert Notification.query.filter_by(user_id=ids.assistant_a).count() == 0

    log = ActivityLog.query.filter_by(entity_type='user_profile', action_type='delete').one()
    assert log.severity_level == 'warning'
    assert log.entity_name == 'Assistant A'
    assert log.extra['related_records']['assets_created'] == 1
    assert log.extra['deleted_by_hod'] is True


def test_delete_user_rules(users, ids):
    with pytest.raises(PermissionDeniedError):
        user_service.delete_user(ids.assistant_a, users.incharge_a)
    with pytest.raises(WorkflowError):
        user_service.delete_user(ids.hod, users.hod)
    with pytest.raises(NotFoundError):
        user_service.delete_user('missing', users.hod)
    assert User.query.count() == 5
