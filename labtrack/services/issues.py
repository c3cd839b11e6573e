# labtrack/services/issues.py

from datetime import datetime
from decimal import Decimal, InvalidOperation
from sqlalchemy import case
from labtrack.extensions import db
from labtrack.errors import WorkflowError
from labtrack.models import Asset, AssetIssue, Lab, LabIssue
from labtrack.models.issue import OPEN, RESOLVED
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import DELETE as LAB_DELETE
from labtrack.services.permissions import MANAGE_ISSUES, check_lab_permission, require
from labtrack.socket_events import DELETE, INSERT, UPDATE

LAB_ISSUE_FIELDS = ('title', 'description', 'issue_type', 'priority', 'assigned_to', 'remark')
ASSET_ISSUE_FIELDS = ('issue_description', 'remark')
LAB_ISSUE_SORTABLE = ('created_at', 'updated_at', 'priority')


def _set_status(issue, status):
    try:
        issue.status = status
    except ValueError as e:
        raise WorkflowError(str(e)) from e


def _as_money(value):
    if q.is_empty(value):
        return None
    try:
        value = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError):
        raise WorkflowError("Cost must be a number")
    if value < 0:
        raise WorkflowError("Cost cannot be negative")
    return value


def _lab_issue_value(field, value):
    # empty select means unassigned
    if field == 'assigned_to':
        return value or None
    return value


def _require_issue_access(actor, lab_id, action=MANAGE_ISSUES):
    require(
        check_lab_permission(actor, lab_id, action),
        "You do not have permission to manage issues in this lab"
    )


# Lab issues

def list_lab_issues(filters=None):
    filters = filters or {}
    query = LabIssue.query
    query = q.eq(query, LabIssue.lab_id, filters.get('lab_id'))
    query = q.eq(query, LabIssue.status, filters.get('status'))
    query = q.eq(query, LabIssue.priority, filters.get('priority'))
    query = q.eq(query, LabIssue.assigned_to, filters.get('assigned_to'))
    query = q.eq(query, LabIssue.reported_by, filters.get('reported_by'))
    query = q.order(
        query, LabIssue,
        filters.get('sort_by'), filters.get('sort_order', 'desc'),
        LAB_ISSUE_SORTABLE, 'created_at'
    )
    return q.window(query, filters.get('limit'), filters.get('offset')).all()


def get_lab_issue(issue_id):
    return get_or_raise(LabIssue, issue_id, 'Lab issue')


def create_lab_issue(payload, actor):
    lab = get_or_raise(Lab, payload.get('lab_id'), 'Lab')
    _require_issue_access(actor, lab.id)

    if not (payload.get('title') or '').strip() or not (payload.get('description') or '').strip():
        raise WorkflowError("Title and description are required")

    issue = LabIssue(lab_id=lab.id, reported_by=actor.id, status=OPEN)
    for field in LAB_ISSUE_FIELDS:
        if payload.get(field) is not None:
            setattr(issue, field, _lab_issue_value(field, payload[field]))
    db.session.add(issue)
    db.session.flush()

    new = issue.to_dict()
    log_activity(actor, 'report', 'lab_issue', issue.id, issue.title, new_values=new)
    commit(('lab_issues', INSERT, new, None))
    return issue


def update_lab_issue(issue_id, patch, actor):
    issue = get_lab_issue(issue_id)
    _require_issue_access(actor, issue.lab_id)

    old = issue.to_dict()
    for field in LAB_ISSUE_FIELDS:
        if field in patch:
            setattr(issue, field, _lab_issue_value(field, patch[field]))
    if patch.get('status'):
        _set_status(issue, patch['status'])
    db.session.flush()

    new = issue.to_dict()
    action = 'resolve' if new['status'] == RESOLVED and old['status'] != RESOLVED else 'update'
    log_activity(actor, action, 'lab_issue', issue.id, issue.title, old_values=old, new_values=new)
    commit(('lab_issues', UPDATE, new, old))
    return issue


def delete_lab_issue(issue_id, actor):
    issue = get_lab_issue(issue_id)
    _require_issue_access(actor, issue.lab_id, LAB_DELETE)

    old = issue.to_dict()
    db.session.delete(issue)
    log_activity(
        actor, 'delete', 'lab_issue', old['id'], old['title'],
        old_values=old, severity_level='warning'
    )
    commit(('lab_issues', DELETE, None, old))


# Asset issues

def list_asset_issues(filters=None):
    """Asset issues, open ones first and newest first within each group."""
    filters = filters or {}
    query = AssetIssue.query.join(Asset, AssetIssue.asset_id == Asset.id)
    query = q.eq(query, AssetIssue.status, filters.get('status'))
    query = q.eq(query, Asset.allocated_lab, filters.get('lab'))
    query = q.eq(query, AssetIssue.asset_id, filters.get('asset_id'))
    query = q.ilike(
        query,
        [AssetIssue.issue_description, Asset.name_of_supply, Asset.asset_id],
        filters.get('search')
    )
    open_first = case((AssetIssue.status == OPEN, 0), else_=1)
    query = query.order_by(open_first, AssetIssue.reported_at.desc())
    return q.window(query, filters.get('limit'), filters.get('offset')).all()


def get_asset_issue(issue_id):
    return get_or_raise(AssetIssue, issue_id, 'Asset issue')


def report_asset_issue(asset_id, payload, actor):
    asset = get_or_raise(Asset, asset_id, 'Asset')
    _require_issue_access(actor, asset.allocated_lab)
    description = (payload.get('issue_description') or '').strip()
    if not description:
        raise WorkflowError("Issue description is required")

    issue = AssetIssue(
        asset_id=asset.id,
        issue_description=description,
        reported_by=actor.id,
        reported_at=datetime.utcnow(),
        status=OPEN,
        remark=payload.get('remark'),
        cost_required=_as_money(payload.get('cost_required'))
    )
    db.session.add(issue)
    db.session.flush()

    new = issue.to_dict()
    log_activity(
        actor, 'report', 'asset_issue', issue.id, asset.asset_id or asset.name_of_supply,
        new_values=new
    )
    commit(('asset_issues', INSERT, new, None))
    return issue


def update_asset_issue(issue_id, patch, actor):
    issue = get_asset_issue(issue_id)
    _require_issue_access(actor, issue.lab_id)

    old = issue.to_dict()
    for field in ASSET_ISSUE_FIELDS:
        if field in patch:
            setattr(issue, field, patch[field])
    if 'cost_required' in patch:
        issue.cost_required = _as_money(patch['cost_required'])
    if patch.get('status'):
        _set_status(issue, patch['status'])
        if issue.status == RESOLVED and old['status'] != RESOLVED:
            issue.resolved_by = actor.id
            issue.resolved_at = datetime.utcnow()
    db.session.flush()

    new = issue.to_dict()
    action = 'resolve' if new['status'] == RESOLVED and old['status'] != RESOLVED else 'update'
    log_activity(
        actor, action, 'asset_issue', issue.id,
        issue.asset.asset_id if issue.asset else None,
        old_values=old, new_values=new
    )
    commit(('asset_issues', UPDATE, new, old))
    return issue


def resolve_asset_issue(issue_id, actor, remark=None, cost_required=None):
    patch = {'status': RESOLVED}
    if remark is not None:
        patch['remark'] = remark
    if cost_required is not None:
        patch['cost_required'] = cost_required
    return update_asset_issue(issue_id, patch, actor)


def delete_asset_issue(issue_id, actor):
    issue = get_asset_issue(issue_id)
    _require_issue_access(actor, issue.lab_id, LAB_DELETE)

    old = issue.to_dict()
    name = issue.asset.asset_id if issue.asset else None
    db.session.delete(issue)
    log_activity(
        actor, 'delete', 'asset_issue', old['id'], name,
        old_values=old, severity_level='warning'
    )
    commit(('asset_issues', DELETE, None, old))
