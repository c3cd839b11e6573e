# labtrack/services/deleted_assets.py
"""Archive of deleted assets.

Deleting an asset moves a snapshot here. The HOD approves the deletion,
restores the asset into the register, or purges the archived copy.
"""

from datetime import datetime
from labtrack.errors import WorkflowError
from labtrack.extensions import db
from labtrack.models import Asset, DeletedAsset
from labtrack.models.deleted_asset import SNAPSHOT_FIELDS
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.assets import generate_asset_code
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import can_manage_deleted_assets, require
from labtrack.socket_events import DELETE, INSERT, UPDATE

# a restored asset is a new register row with a fresh id, serial and code
RESTORED_FIELDS = tuple(
    field for field in SNAPSHOT_FIELDS if field not in ('sr_no', 'asset_id', 'total_amount')
)


def list_deleted_assets(filters=None):
    """Archived assets, pending approvals first, newest deletions first.

    Args:
        filters: dict with optional lab, search, include_restored keys
    """
    filters = filters or {}
    query = DeletedAsset.query
    if not q.as_bool(filters.get('include_restored')):
        query = query.filter(DeletedAsset.restored.is_(False))
    query = q.eq(query, DeletedAsset.allocated_lab, filters.get('lab'))
    query = q.ilike(
        query, [DeletedAsset.name_of_supply, DeletedAsset.asset_id], filters.get('search')
    )
    return query.order_by(
        DeletedAsset.hod_approval.asc(),
        DeletedAsset.deleted_at.desc()
    ).all()


def get_deleted_asset(deleted_asset_id):
    return get_or_raise(DeletedAsset, deleted_asset_id, 'Deleted asset')


def _name(archived):
    return archived.asset_id or archived.name_of_supply


def approve_deletion(deleted_asset_id, actor):
    archived = get_deleted_asset(deleted_asset_id)
    require(can_manage_deleted_assets(actor), "Only the HOD can approve deletions")
    if archived.restored:
        raise WorkflowError("Asset has already been restored")
    if archived.hod_approval:
        raise WorkflowError("Deletion is already approved")

    old = archived.to_dict()
    archived.hod_approval = True
    archived.hod_approved_by = actor.id
    archived.hod_approved_at = datetime.utcnow()
    db.session.flush()

    new = archived.to_dict()
    log_activity(
        actor, 'approve', 'deleted_asset', archived.id, _name(archived),
        old_values=old, new_values=new
    )
    commit(('deleted_assets', UPDATE, new, old))
    return archived


def restore_deleted_asset(deleted_asset_id, actor):
    """Put an archived asset back into the register.

    Returns:
        Asset: the new register row
    """
    archived = get_deleted_asset(deleted_asset_id)
    require(can_manage_deleted_assets(actor), "Only the HOD can restore deleted assets")
    if archived.restored:
        raise WorkflowError("Deleted asset is already restored")

    old = archived.to_dict()
    asset = Asset()
    for field in RESTORED_FIELDS:
        setattr(asset, field, getattr(archived, field))
    asset.asset_id = generate_asset_code(asset.allocated_lab, asset.asset_type)
    db.session.add(asset)

    archived.restored = True
    archived.restored_at = datetime.utcnow()
    archived.restored_by = actor.id
    db.session.flush()

    new_asset = asset.to_dict()
    log_activity(
        actor, 'restore', 'asset', asset.id, asset.asset_id,
        new_values=new_asset,
        metadata={'original_deleted_asset_id': archived.id}
    )
    commit(
        ('assets', INSERT, new_asset, None),
        ('deleted_assets', UPDATE, archived.to_dict(), old)
    )
    return asset


def purge_deleted_asset(deleted_asset_id, actor):
    """Drop an approved archive entry for good."""
    archived = get_deleted_asset(deleted_asset_id)
    require(can_manage_deleted_assets(actor), "Only the HOD can purge deleted assets")
    if not archived.hod_approval and not archived.restored:
        raise WorkflowError("Approve the deletion before purging it")

    old = archived.to_dict()
    db.session.delete(archived)
    log_activity(
        actor, 'delete', 'deleted_asset', old['id'], old['asset_id'] or old['name_of_supply'],
        old_values=old, severity_level='warning'
    )
    commit(('deleted_assets', DELETE, None, old))
