# labtrack/services/base.py

from sqlalchemy import event
from sqlalchemy.orm import Session
from labtrack.extensions import db
from labtrack.errors import NotFoundError
from labtrack.socket_events import notify_table_change, notify_user

PENDING_NOTIFICATIONS = 'pending_notifications'


def get_or_raise(model, entity_id, entity=None):
    """Fetch a row by primary key or raise NotFoundError."""
    row = db.session.get(model, entity_id) if entity_id else None
    if row is None:
        raise NotFoundError(entity or model.__name__, entity_id)
    return row


def queue_notification(notification):
    """Hold a notification until the surrounding transaction commits."""
    db.session.info.setdefault(PENDING_NOTIFICATIONS, []).append(notification)


def commit(*changes):
    """Commit the session, then publish realtime events.

    Args:
        changes: (table, event_type, new, old) tuples for the change feed
    """
    db.session.commit()
    for notification in db.session.info.pop(PENDING_NOTIFICATIONS, []):
        notify_user(notification)
    for table, event_type, new, old in changes:
        notify_table_change(table, event_type, new, old)


@event.listens_for(Session, 'after_soft_rollback')
def drop_pending_notifications(session, previous_transaction):
    session.info.pop(PENDING_NOTIFICATIONS, None)
