# labtrack/services/notifications.py

from datetime import datetime, timedelta
from labtrack.extensions import db
from labtrack.errors import PermissionDeniedError
from labtrack.models import Notification, User
from labtrack.services.base import commit, get_or_raise, queue_notification
from labtrack.services.query import window
from labtrack.utils import format_timestamp

MESSAGE_TEMPLATES = {
    'insert': 'New {entity_type} created: {entity_name}',
    'update': '{entity_type} updated: {entity_name}',
    'delete': '{entity_type} deleted: {entity_name}',
    'transfer': '{entity_type} transferred: {entity_name}',
    'approve': '{entity_type} approved: {entity_name}',
    'reject': '{entity_type} rejected: {entity_name}',
    'resolve': '{entity_type} resolved: {entity_name}',
    'report': 'New {entity_type} reported: {entity_name}',
    'restore': '{entity_type} restored: {entity_name}',
}
DEFAULT_TEMPLATE = 'Action performed on {entity_type}: {entity_name}'


def build_message(action_type, entity_type, entity_name):
    template = MESSAGE_TEMPLATES.get(action_type, DEFAULT_TEMPLATE)
    return template.format(entity_type=entity_type, entity_name=entity_name or '')


def create_notification(action_type, entity_type, entity_id, entity_name,
                        actor=None, target=None):
    """Create inbox entries without committing.

    A `target` user gets one notification; with no target every user
    profile gets a copy.

    Returns:
        list: the Notification rows added to the session
    """
    message = build_message(action_type, entity_type, entity_name)
    if target is not None:
        recipients = [target.id if isinstance(target, User) else target]
    else:
        recipients = [user_id for (user_id,) in db.session.query(User.id).all()]

    created = []
    for user_id in recipients:
        notification = Notification(
            user_id=user_id,
            actor_id=actor.id if actor else None,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            message=message,
            is_read=False
        )
        db.session.add(notification)
        queue_notification(notification)
        created.append(notification)
    return created


def notify(action_type, entity_type, entity_id, entity_name, actor=None, target=None):
    """Create notifications and commit them right away."""
    created = create_notification(
        action_type, entity_type, entity_id, entity_name, actor, target
    )
    commit()
    return created


def list_notifications(user_id, limit=20, offset=0):
    query = Notification.query.filter_by(user_id=user_id)\
        .order_by(Notification.created_at.desc())
    return window(query, limit, offset).all()


def get_unread_count(user_id):
    return Notification.query.filter_by(user_id=user_id, is_read=False).count()


def mark_as_read(notification_id, user):
    notification = get_or_raise(Notification, notification_id, 'Notification')
    if notification.user_id != user.id:
        raise PermissionDeniedError("You can only read your own notifications")
    notification.is_read = True
    commit()
    return notification


def mark_all_as_read(user):
    updated = Notification.query\
        .filter_by(user_id=user.id, is_read=False)\
        .update({Notification.is_read: True}, synchronize_session=False)
    commit()
    return updated


def format_relative_time(timestamp, now=None):
    now = now or datetime.utcnow()
    seconds = int((now - timestamp).total_seconds())
    if seconds < 60:
        return 'just now'
    if seconds < 3600:
        return f'{seconds // 60}m ago'
    if seconds < 86400:
        return f'{seconds // 3600}h ago'
    if seconds < 604800:
        return f'{seconds // 86400}d ago'
    return format_timestamp(timestamp).strftime('%Y-%m-%d')


def group_by_date(notifications, today=None):
    """Bucket notifications under Today, Yesterday or a weekday label."""
    today = today or format_timestamp(datetime.utcnow()).date()
    yesterday = today - timedelta(days=1)
    groups = {}
    for notification in notifications:
        day = format_timestamp(notification.created_at).date()
        if day == today:
            key = 'Today'
        elif day == yesterday:
            key = 'Yesterday'
        else:
            key = day.strftime('%A, %b %d')
        groups.setdefault(key, []).append(notification)
    return groups
