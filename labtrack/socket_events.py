# labtrack/socket_events.py

from flask_socketio import emit, join_room
from flask_login import current_user
from flask import current_app
from labtrack.extensions import socketio
import functools
from redis.exceptions import RedisError

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'


def user_room(user_id):
    """Room carrying one user's notification feed."""
    return f'notifications:{user_id}'


def handle_redis_error(f):
    """Log broker failures instead of failing the write that triggered them."""
    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RedisError as e:
            current_app.logger.error(f"Redis error in socket event: {str(e)}")
        return None
    return wrapped


@socketio.on('connect')
def handle_connect():
    """Subscribe the client to its own notification room."""
    # returning False refuses the connection
    if not current_user.is_authenticated:
        return False
    join_room(user_room(current_user.id))
    emit('status', {'msg': f'{current_user.name} connected'})
    current_app.logger.info(f'Client connected: {current_user.email}')
    return True


@socketio.on('disconnect')
def handle_disconnect():
    """Client disconnection event"""
    if current_user.is_authenticated:
        current_app.logger.info(f'Client disconnected: {current_user.email}')


@handle_redis_error
def notify_table_change(table, event_type, new=None, old=None):
    """
    Broadcast a row change so open list pages can refetch.
    Args:
        table: Table name, e.g. 'assets'
        event_type: INSERT, UPDATE or DELETE
        new: Row snapshot after the change
        old: Row snapshot before the change
    """
    payload = {
        'table': table,
        'eventType': event_type,
        'new': new or {},
        'old': old or {}
    }
    socketio.emit('table_change', payload)
    return payload


@handle_redis_error
def notify_user(notification):
    """
    Push a freshly created notification to its owner.
    Args:
        notification: Notification model instance
    """
    payload = {
        'id': notification.id,
        'action_type': notification.action_type,
        'entity_type': notification.entity_type,
        'entity_id': notification.entity_id,
        'entity_name': notification.entity_name,
        'message': notification.message,
        'created_at': notification.created_at.isoformat()
        if notification.created_at else None
    }
    socketio.emit('notification', payload, to=user_room(notification.user_id))
    return payload
