# labtrack/services/labs.py

from sqlalchemy import exists
from labtrack.extensions import db
from labtrack.errors import WorkflowError
from labtrack.models import Asset, AssetTransfer, DeletedAsset, Lab, LabIssue, User
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import require
from labtrack.socket_events import DELETE, INSERT, UPDATE

LAB_FIELDS = ('name', 'description', 'location')
SORTABLE = ('name', 'created_at', 'updated_at')


def list_labs(filters=None):
    """Labs matching the filters.

    Args:
        filters: dict with optional search, location, has_open_issues,
            sort_by and sort_order keys

    Returns:
        list: Lab rows
    """
    filters = filters or {}
    query = Lab.query
    query = q.ilike(query, [Lab.name], filters.get('search'))
    query = q.ilike(query, [Lab.location], filters.get('location'))

    has_open_issues = q.as_bool(filters.get('has_open_issues'))
    if has_open_issues is not None:
        open_issue = exists().where(
            LabIssue.lab_id == Lab.id,
            LabIssue.status.in_(LabIssue.ACTIVE_STATUSES)
        )
        query = query.filter(open_issue if has_open_issues else ~open_issue)

    return q.order(
        query, Lab,
        filters.get('sort_by'), filters.get('sort_order', 'asc'),
        SORTABLE, 'name'
    ).all()


def get_lab(lab_id):
    return get_or_raise(Lab, lab_id, 'Lab')


def get_lab_by_identifier(lab_identifier):
    return Lab.query.filter_by(lab_identifier=lab_identifier).first()


def create_lab(payload, actor):
    require(actor.is_hod(), "Only the HOD can create labs")
    identifier = (payload.get('lab_identifier') or '').strip()
    if get_lab_by_identifier(identifier):
        raise WorkflowError(f"Lab with identifier {identifier} already exists")

    lab = Lab(
        name=payload.get('name'),
        description=payload.get('description'),
        location=payload.get('location') or '',
        lab_identifier=identifier
    )
    db.session.add(lab)
    db.session.flush()

    log_activity(actor, 'insert', 'lab', lab.id, lab.name, new_values=lab.to_dict())
    commit(('labs', INSERT, lab.to_dict(), None))
    return lab


def update_lab(lab_id, patch, actor):
    lab = get_lab(lab_id)
    require(actor.is_hod(), "Only the HOD can edit labs")

    identifier = patch.get('lab_identifier')
    if identifier is not None and identifier.strip() != lab.lab_identifier:
        raise WorkflowError("Lab identifier cannot be changed once created")

    old = lab.to_dict()
    for field in LAB_FIELDS:
        if field in patch:
            setattr(lab, field, patch[field])
    db.session.flush()

    new = lab.to_dict()
    log_activity(actor, 'update', 'lab', lab.id, lab.name, old_values=old, new_values=new)
    commit(('labs', UPDATE, new, old))
    return lab


def lab_references(lab_id):
    """Names of the tables still pointing at a lab."""
    checks = (
        ('assets', Asset.allocated_lab == lab_id),
        ('deleted_assets', DeletedAsset.allocated_lab == lab_id),
        ('asset_transfers', (AssetTransfer.from_lab == lab_id) | (AssetTransfer.to_lab == lab_id)),
        ('user_profiles', User.lab_id == lab_id),
        ('lab_issues', LabIssue.lab_id == lab_id),
    )
    return [name for name, clause in checks if db.session.query(exists().where(clause)).scalar()]


def delete_lab(lab_id, actor):
    lab = get_lab(lab_id)
    require(actor.is_hod(), "Only the HOD can delete labs")

    references = lab_references(lab.id)
    if references:
        raise WorkflowError(
            f"Lab {lab.lab_identifier} is still referenced by {', '.join(references)}"
        )

    old = lab.to_dict()
    db.session.delete(lab)
    log_activity(
        actor, 'delete', 'lab', old['id'], old['name'],
        old_values=old, severity_level='warning'
    )
    commit(('labs', DELETE, None, old))


def get_lab_assets(lab_id):
    get_lab(lab_id)
    return Asset.query.filter_by(allocated_lab=lab_id)\
        .order_by(Asset.sr_no.asc())\
        .all()


def seed_labs():
    """Insert the predefined labs that are missing; returns the new rows."""
    created = []
    for identifier, name, description, location in Lab.PREDEFINED_LABS:
        if get_lab_by_identifier(identifier):
            continue
        lab = Lab(
            lab_identifier=identifier,
            name=name,
            description=description,
            location=location
        )
        db.session.add(lab)
        created.append(lab)
    commit()
    return created
