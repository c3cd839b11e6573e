import pytest
from datetime import date, datetime, timedelta
from labtrack.errors import NotFoundError, PermissionDeniedError
from labtrack.models import Notification
from labtrack.services import notifications as notification_service


def test_build_message():
    assert notification_service.build_message('insert', 'asset', 'PC-1') == \
        'New asset created: PC-1'
    assert notification_service.build_message('report', 'asset_issue', 'PC-1') == \
        'New asset_issue reported: PC-1'
    assert notification_service.build_message('archive', 'lab', 'CL1') == \
        'Action performed on lab: CL1'


def test_notify_single_target(users):
    created = notification_service.notify(
        'approve', 'asset', 'a1', 'PC-1', actor=users.hod, target=users.assistant_a
    )
    assert len(created) == 1
    assert created[0].user_id == users.assistant_a.id
    assert created[0].actor_name == 'Head of Department'
    assert notification_service.get_unread_count(users.assistant_a.id) == 1
    assert notification_service.get_unread_count(users.hod.id) == 0


def test_mark_as_read_only_own(users):
    notification_service.notify('insert', 'asset', 'a1', 'PC-1', actor=users.hod)
    mine = notification_service.list_notifications(users.assistant_a.id)[0]

    with pytest.raises(PermissionDeniedError):
        notification_service.mark_as_read(mine.id, users.incharge_a)
    with pytest.raises(NotFoundError):
        notification_service.mark_as_read('missing', users.assistant_a)

    notification_service.mark_as_read(mine.id, users.assistant_a)
    assert notification_service.get_unread_count(users.assistant_a.id) == 0
    assert notification_service.get_unread_count(users.incharge_a.id) == 1


def test_mark_all_as_read(users):
    for name in ('PC-1', 'PC-2', 'PC-3'):
        notification_service.notify('insert', 'asset', None, name, target=users.hod)

    assert notification_service.get_unread_count(users.hod.id) == 3
    assert notification_service.mark_all_as_read(users.hod) == 3
    assert notification_service.get_unread_count(users.hod.id) == 0
    assert notification_service.mark_all_as_read(users.hod) == 0


def test_list_notifications_paging(users):
    for name in ('A', 'B', 'C'):
        notification_service.notify('insert', 'asset', None, name, target=users.hod)

    assert len(notification_service.list_notifications(users.hod.id, limit=2)) == 2
    assert len(notification_service.list_notifications(users.hod.id, limit=2, offset=2)) == 1


def test_format_relative_time():
    now = datetime(2024, 5, 10, 12, 0, 0)
    fmt = notification_service.format_relative_time
    assert fmt(now - timedelta(seconds=30), now) == 'just now'
    assert fmt(now - timedelta(minutes=5), now) == '5m ago'
    assert fmt(now - timedelta(hours=3), now) == '3h ago'
    assert fmt(now - timedelta(days=2), now) == '2d ago'


def test_group_by_date(app_ctx):
    # timestamps are UTC, grouping happens in Asia/Kolkata
    today = date(2024, 5, 10)
    notifications = [
        Notification(created_at=datetime(2024, 5, 10, 6, 0)),
        Notification(created_at=datetime(2024, 5, 9, 6, 0)),
        Notification(created_at=datetime(2024, 5, 6, 6, 0)),
    ]
    groups = notification_service.group_by_date(notifications, today=today)
    assert list(groups) == ['Today', 'Yesterday', 'Monday, May 06']
