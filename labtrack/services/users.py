# labtrack/services/users.py
"""User profile administration for the HOD.

Writes are logged under the `user_profile` entity type. Password hashes
never appear in audit payloads or change events.
"""

from sqlalchemy import func, or_
from labtrack.errors import WorkflowError
from labtrack.extensions import db
from labtrack.models import (
    ActivityLog, Asset, AssetIssue, AssetTransfer, Lab, Notification, User
)
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import can_manage_users, require
from labtrack.socket_events import DELETE, INSERT, UPDATE

EDITABLE_FIELDS = ('name', 'email', 'role', 'lab_id', 'is_active')
SORTABLE = ('name', 'email', 'role', 'created_at', 'last_login')


def snapshot(user):
    data = user.to_dict()
    data.pop('password_hash', None)
    return data


def list_users(filters=None):
    """User profiles, filtered by search (name, email, role), role, lab and active flag."""
    filters = filters or {}
    query = User.query
    query = q.ilike(query, [User.name, User.email, User.role], filters.get('search'))
    query = q.eq(query, User.role, filters.get('role'))
    query = q.eq(query, User.lab_id, filters.get('lab'))
    active = q.as_bool(filters.get('is_active'))
    if active is not None:
        query = query.filter(User.is_active.is_(active))
    return q.order(
        query, User,
        filters.get('sort_by'), filters.get('sort_order', 'asc'),
        SORTABLE, 'name'
    ).all()


def get_user(user_id):
    return get_or_raise(User, user_id, 'User')


def _check_email(email, exclude_id=None):
    query = User.query.filter(func.lower(User.email) == email.strip().lower())
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise WorkflowError(f"User '{email.strip().lower()}' already exists")


def _check_lab(role, lab_id):
    if lab_id:
        get_or_raise(Lab, lab_id, 'Lab')
    elif role != User.HOD:
        raise WorkflowError(f"A {role} must belong to a lab")


def create_user(payload, actor=None):
    """Create a user profile.

    Args:
        payload: email, name, password, role and lab_id
        actor: the HOD creating the account, None from the command line

    Returns:
        User: the new profile
    """
    require(actor is None or can_manage_users(actor), "Only the HOD can add users")
    email = (payload.get('email') or '').strip()
    role = payload.get('role') or User.LAB_ASSISTANT
    lab_id = payload.get('lab_id') or None
    if not (payload.get('name') or '').strip():
        raise WorkflowError("A name is required")
    if not payload.get('password'):
        raise WorkflowError("A password is required")
    _check_email(email)
    _check_lab(role, lab_id)

    user = User(email=email, name=payload.get('name'), role=role, lab_id=lab_id)
    user.set_password(payload['password'])
    db.session.add(user)
    db.session.flush()

    new = snapshot(user)
    log_activity(actor, 'insert', 'user_profile', user.id, user.name, new_values=new)
    commit(('user_profiles', INSERT, new, None))
    return user


def update_user(user_id, patch, actor):
    """Change name, email, role, lab, active flag or password of a profile."""
    require(can_manage_users(actor), "Only the HOD can update user profiles")
    user = get_user(user_id)

    if user.id == actor.id:
        if patch.get('role') and patch['role'] != user.role:
            raise WorkflowError("You cannot change your own role")
        if q.as_bool(patch.get('is_active')) is False:
            raise WorkflowError("You cannot deactivate your own account")
    if patch.get('email'):
        _check_email(patch['email'], exclude_id=user.id)

    role = patch.get('role') or user.role
    lab_id = (patch['lab_id'] or None) if 'lab_id' in patch else user.lab_id
    _check_lab(role, lab_id)

    old = snapshot(user)
    for field in EDITABLE_FIELDS:
        if field not in patch:
            continue
        value = patch[field]
        if field == 'lab_id':
            value = value or None
        elif field == 'is_active':
            value = bool(q.as_bool(value))
        elif not value:
            continue
        setattr(user, field, value)
    if patch.get('password'):
        user.set_password(patch['password'])
    db.session.flush()

    new = snapshot(user)
    extra = {'password_changed': True} if patch.get('password') else None
    log_activity(
        actor, 'update', 'user_profile', user.id, user.name,
        old_values=old, new_values=new, metadata=extra
    )
    commit(('user_profiles', UPDATE, new, old))
    return user


def set_user_active(user_id, active, actor):
    return update_user(user_id, {'is_active': active}, actor)


def related_records(user_id):
    """How many rows point at a user; logged with the deletion."""
    counts = (
        ('assets_created', Asset.created_by == user_id),
        ('assets_approved', Asset.approved_by == user_id),
        ('assets_approved_lab_incharge', Asset.approved_by_lab_incharge == user_id),
        ('issues_reported', AssetIssue.reported_by == user_id),
        ('issues_resolved', AssetIssue.resolved_by == user_id),
        ('transfers_initiated', AssetTransfer.initiated_by == user_id),
        ('transfers_received', AssetTransfer.received_by == user_id),
        ('notifications_sent', Notification.actor_id == user_id),
        ('activity_logs', ActivityLog.user_id == user_id),
    )
    return {
        name: db.session.query(func.count()).filter(clause).scalar()
        for name, clause in counts
    }


def delete_user(user_id, actor):
    require(can_manage_users(actor), "Only the HOD can delete user profiles")
    user = get_user(user_id)
    if user.id == actor.id:
        raise WorkflowError("You cannot delete your own account")

    old = snapshot(user)
    related = related_records(user.id)
    # the user's own inbox goes with the profile
    Notification.query.filter(
        or_(Notification.user_id == user.id, Notification.actor_id == user.id)
    ).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.flush()

    log_activity(
        actor, 'delete', 'user_profile', old['id'], old['name'],
        old_values=old, severity_level='warning',
        metadata={'related_records': related, 'deleted_by_hod': True}
    )
    commit(('user_profiles', DELETE, None, old))
