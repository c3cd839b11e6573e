from conftest import login, make_asset_payload
from labtrack.extensions import db, socketio
from labtrack.models import User
from labtrack.services.assets import create_asset
from labtrack.socket_events import notify_table_change, user_room


def _events(socket_client, name):
    return [event['args'][0] for event in socket_client.get_received() if event['name'] == name]


def test_user_room():
    assert user_room('abc') == 'notifications:abc'


def test_notify_table_change_payload(app):
    with app.app_context():
        payload = notify_table_change('labs', 'DELETE', old={'id': 'x'})
    assert payload == {'table': 'labs', 'eventType': 'DELETE', 'new': {}, 'old': {'id': 'x'}}


def test_anonymous_connection_is_rejected(app, client):
    socket_client = socketio.test_client(app, flask_test_client=client)
    assert socket_client.is_connected() is False


def test_authenticated_client_receives_changes(app, ids):
    client = app.test_client()
    login(client, 'hod@test.com')
    socket_client = socketio.test_client(app, flask_test_client=client)
    assert socket_client.is_connected() is True
    assert _events(socket_client, 'status') == [{'msg': 'Head of Department connected'}]

    with app.app_context():
        assistant = db.session.get(User, ids.assistant_a)
        asset = create_asset(make_asset_payload(ids.lab_a, ids.pc), assistant)
        asset_code = asset.asset_id

    received = socket_client.get_received()
    changes = [e['args'][0] for e in received if e['name'] == 'table_change']
    assert len(changes) == 1
    assert changes[0]['table'] == 'assets'
    assert changes[0]['eventType'] == 'INSERT'
    assert changes[0]['new']['asset_id'] == asset_code
    assert changes[0]['old'] == {}

    # only the HOD's own copy of the notification reaches this client
    notifications = [e['args'][0] for e in received if e['name'] == 'notification']
    assert [n['message'] for n in notifications] == [f'New asset created: {asset_code}']

    socket_client.disconnect()
