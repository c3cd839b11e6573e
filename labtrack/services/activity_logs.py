# labtrack/services/activity_logs.py

from collections import Counter
from datetime import datetime, timedelta
from sqlalchemy import or_
from labtrack.extensions import db
from labtrack.models import ActivityLog
from labtrack.services import query as q
from labtrack.services.base import commit
from labtrack.services.notifications import create_notification
from labtrack.utils import client_info


def diff_values(old, new):
    """Key-wise difference of two row snapshots.

    Returns:
        dict: {key: {'old': value, 'new': value}} for every changed key
    """
    old = old or {}
    new = new or {}
    changes = {}
    for key in sorted(set(old) | set(new)):
        if old.get(key) != new.get(key):
            changes[key] = {'old': old.get(key), 'new': new.get(key)}
    return changes


def log_activity(
    actor,
    action_type,
    entity_type,
    entity_id=None,
    entity_name=None,
    old_values=None,
    new_values=None,
    changes=None,
    severity_level='info',
    success=True,
    error_message=None,
    metadata=None,
    notify=True
):
    """Record an activity without committing.

    Args:
        actor: User performing the action, None for system actions
        action_type: insert/update/delete/approve/transfer/receive/...
        entity_type: asset/lab/transfer/issue/user/...
        notify: Also fan a notification out to every user

    Returns:
        ActivityLog: The created log entry
    """
    metadata = dict(metadata or {})
    info = client_info()
    if changes is None and old_values is not None and new_values is not None:
        changes = diff_values(old_values, new_values)

    log = ActivityLog(
        user_id=actor.id if actor else None,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        old_values=old_values,
        new_values=new_values,
        changes=changes,
        ip_address=metadata.get('ip_address') or info.get('ip_address'),
        user_agent=metadata.get('user_agent') or info.get('user_agent'),
        severity_level=severity_level,
        success=success,
        error_message=error_message,
        extra=metadata
    )
    db.session.add(log)

    if notify:
        create_notification(
            action_type, entity_type, entity_id, entity_name, actor=actor
        )
    return log


def log_bulk_activities(actor, activities):
    """Record several activities in one commit; returns how many were logged."""
    for activity in activities:
        log_activity(actor, **activity)
    commit()
    return len(activities)


def log_user_login(user):
    log = log_activity(
        user, 'login', 'user', user.id, 'User Login',
        metadata={'description': 'User successfully logged in'},
        notify=False
    )
    commit()
    return log


def log_user_logout(user):
    log = log_activity(
        user, 'logout', 'user', user.id, 'User Logout',
        metadata={'description': 'User logged out'},
        notify=False
    )
    commit()
    return log


def log_failed_login(email, error_message):
    log = log_activity(
        None, 'login_failed', 'user', None, 'Failed Login',
        severity_level='warning',
        success=False,
        error_message=error_message,
        metadata={'description': 'Failed login attempt', 'email': email},
        notify=False
    )
    commit()
    return log


def log_error(actor, action_type, entity_type, error_message,
              entity_id=None, entity_name=None, metadata=None):
    """Record a failed operation; commits on its own session state."""
    metadata = dict(metadata or {})
    metadata['description'] = f'Error occurred during {action_type}'
    log = log_activity(
        actor, action_type, entity_type, entity_id, entity_name,
        severity_level='error',
        success=False,
        error_message=error_message,
        metadata=metadata,
        notify=False
    )
    commit()
    return log


def log_warning(actor, action_type, entity_type, warning_message,
                entity_id=None, entity_name=None, metadata=None):
    metadata = dict(metadata or {})
    metadata['description'] = f'Warning during {action_type}'
    log = log_activity(
        actor, action_type, entity_type, entity_id, entity_name,
        severity_level='warning',
        error_message=warning_message,
        metadata=metadata,
        notify=False
    )
    commit()
    return log


def list_activity_logs(filters=None):
    filters = filters or {}
    query = ActivityLog.query
    query = q.eq(query, ActivityLog.user_id, filters.get('user_id'))
    query = q.eq(query, ActivityLog.action_type, filters.get('action_type'))
    query = q.eq(query, ActivityLog.entity_type, filters.get('entity_type'))
    query = q.eq(query, ActivityLog.severity_level, filters.get('severity_level'))
    success = q.as_bool(filters.get('success'))
    if success is not None:
        query = query.filter(ActivityLog.success == success)
    query = q.between(
        query,
        ActivityLog.created_at,
        q.as_datetime(filters.get('start_date')),
        q.as_datetime(filters.get('end_date'), end_of_day=True)
    )
    query = query.order_by(ActivityLog.created_at.desc())
    return q.window(
        query, filters.get('limit') or 50, filters.get('offset') or 0
    ).all()


def get_entity_activity_logs(entity_type, entity_id, limit=20, offset=0):
    query = ActivityLog.query\
        .filter_by(entity_type=entity_type, entity_id=entity_id)\
        .order_by(ActivityLog.created_at.desc())
    return q.window(query, limit, offset).all()


def get_recent_activity(limit=10):
    return list_activity_logs({'limit': limit})


def get_user_activity_timeline(user_id, limit=20):
    return list_activity_logs({'user_id': user_id, 'limit': limit})


def search_activity_logs(term, limit=20):
    pattern = f"%{term.strip()}%"
    return ActivityLog.query\
        .filter(or_(
            ActivityLog.entity_name.ilike(pattern),
            ActivityLog.error_message.ilike(pattern)
        ))\
        .order_by(ActivityLog.created_at.desc())\
        .limit(limit)\
        .all()


def get_activity_stats(user_id=None, days=30):
    """Aggregate the last `days` of activity, optionally for one user."""
    since = datetime.utcnow() - timedelta(days=days)
    query = db.session.query(
        ActivityLog.action_type,
        ActivityLog.entity_type,
        ActivityLog.success
    ).filter(ActivityLog.created_at >= since)
    if user_id:
        query = query.filter(ActivityLog.user_id == user_id)
    rows = query.all()

    total = len(rows)
    successful = sum(1 for row in rows if row.success)
    failed = total - successful
    return {
        'total_activities': total,
        'successful_activities': successful,
        'failed_activities': failed,
        'top_action_types': dict(Counter(row.action_type for row in rows).most_common(10)),
        'top_entity_types': dict(Counter(row.entity_type for row in rows).most_common(10)),
        'error_rate': round(failed * 100.0 / total, 2) if total else 0.0,
    }


def clean_old_logs(days_to_keep=90):
    """Delete logs older than the retention window; returns the count."""
    cutoff = datetime.utcnow() - timedelta(days=days_to_keep)
    deleted = ActivityLog.query\
        .filter(ActivityLog.created_at < cutoff)\
        .delete(synchronize_session=False)
    commit()
    return deleted
