# labtrack/services/assets.py
"""Asset register operations.

Every write records an activity log entry and publishes a `table_change`
event for the `assets` table once the transaction commits.
"""

from datetime import datetime
from flask import current_app
from sqlalchemy.orm import joinedload
from labtrack.errors import WorkflowError
from labtrack.extensions import db
from labtrack.models import Asset, AssetType, DeletedAsset, Lab
from labtrack.models.asset import parse_asset_number
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import (
    can_approve_asset, can_create_asset, can_delete_asset, can_edit_asset, require
)
from labtrack.socket_events import DELETE, INSERT, UPDATE

ASSET_FIELDS = (
    'date', 'name_of_supply', 'asset_type', 'invoice_number', 'description',
    'rate', 'remark', 'is_consumable', 'allocated_lab'
)
SORTABLE = ('sr_no', 'date', 'name_of_supply', 'rate', 'created_at', 'updated_at')


def generate_asset_code(lab_id, asset_type_id, exclude_id=None):
    """Next asset code for a lab and type.

    Args:
        lab_id: Lab the asset is allocated to
        asset_type_id: AssetType id, unknown types fall back to the default prefix
        exclude_id: Asset to ignore, used when an asset is being re-coded

    Returns:
        str: e.g. RSCOE/CSBS/CL1/PC-4
    """
    lab = get_or_raise(Lab, lab_id, 'Lab')
    asset_type = db.session.get(AssetType, asset_type_id) if asset_type_id else None
    type_identifier = asset_type.identifier if asset_type else AssetType.DEFAULT_IDENTIFIER

    query = db.session.query(Asset.asset_id).filter(
        Asset.allocated_lab == lab_id,
        Asset.asset_type == asset_type_id
    )
    if exclude_id:
        query = query.filter(Asset.id != exclude_id)
    numbers = [parse_asset_number(code) for (code,) in query.all()]
    next_number = max([n for n in numbers if n is not None], default=0) + 1

    prefix = current_app.config['ASSET_ID_PREFIX']
    return f"{prefix}/{lab.lab_identifier}/{type_identifier}-{next_number}"


def list_assets(filters=None):
    """Assets matching the register filters.

    Args:
        filters: dict with optional search, status, lab, asset_type,
            consumable, date_from, date_to, sort_by, sort_order, limit
            and offset keys
    """
    filters = filters or {}
    query = Asset.query.options(joinedload(Asset.lab))
    query = q.ilike(query, [Asset.name_of_supply, Asset.asset_id], filters.get('search'))

    status = filters.get('status')
    if status == 'approved':
        query = query.filter(Asset.approved.is_(True))
    elif status == 'pending':
        query = query.filter(Asset.approved.is_(False))
    elif status == 'partially_approved':
        query = query.filter(
            Asset.approved.is_(False),
            (Asset.approved_by.isnot(None)) | (Asset.approved_by_lab_incharge.isnot(None))
        )

    query = q.eq(query, Asset.allocated_lab, filters.get('lab'))
    query = q.eq(query, Asset.asset_type, filters.get('asset_type'))
    consumable = q.as_bool(filters.get('consumable'))
    if consumable is not None:
        query = query.filter(Asset.is_consumable.is_(consumable))
    query = q.between(
        query, Asset.date,
        q.as_date(filters.get('date_from')),
        q.as_date(filters.get('date_to'))
    )
    query = q.order(
        query, Asset,
        filters.get('sort_by'), filters.get('sort_order', 'asc'),
        SORTABLE, 'sr_no'
    )
    return q.window(query, filters.get('limit'), filters.get('offset')).all()


def get_asset(asset_id):
    return get_or_raise(Asset, asset_id, 'Asset')


def _apply(asset, payload):
    for field in ASSET_FIELDS:
        if field not in payload:
            continue
        value = payload[field]
        if field == 'date':
            value = q.as_date(value) or asset.date
        elif field == 'is_consumable':
            value = bool(q.as_bool(value))
        elif field == 'asset_type' and not value:
            continue
        setattr(asset, field, value)


def create_asset(payload, actor):
    lab_id = payload.get('allocated_lab')
    get_or_raise(Lab, lab_id, 'Lab')
    require(can_create_asset(actor, lab_id), "You can only add assets to your own lab")

    asset = Asset(created_by=actor.id, approved=False)
    _apply(asset, payload)
    asset.asset_id = generate_asset_code(asset.allocated_lab, asset.asset_type)
    db.session.add(asset)
    db.session.flush()

    new = asset.to_dict()
    log_activity(actor, 'insert', 'asset', asset.id, asset.asset_id, new_values=new)
    commit(('assets', INSERT, new, None))
    current_app.logger.info(f'Asset {asset.asset_id} created by {actor.email}')
    return asset


def update_asset(asset_id, patch, actor):
    asset = get_asset(asset_id)
    require(can_edit_asset(actor, asset), "You do not have permission to edit this asset")

    # assets change lab only when a transfer is received
    patch = dict(patch)
    lab_id = patch.pop('allocated_lab', None)
    if lab_id and lab_id != asset.allocated_lab:
        raise WorkflowError("Use a transfer to move an asset to another lab")

    old = asset.to_dict()
    _apply(asset, patch)
    if asset.asset_type != old['asset_type']:
        asset.asset_id = generate_asset_code(
            asset.allocated_lab, asset.asset_type, exclude_id=asset.id
        )
    asset.refresh_approval()
    db.session.flush()

    new = asset.to_dict()
    log_activity(actor, 'update', 'asset', asset.id, asset.asset_id, old_values=old, new_values=new)
    commit(('assets', UPDATE, new, old))
    return asset


def approve_asset(asset_id, actor):
    """Fill the actor's approval slot and re-derive `approved`."""
    asset = get_asset(asset_id)
    require(can_approve_asset(actor, asset), "You cannot approve this asset")

    old = asset.to_dict()
    now = datetime.utcnow()
    if actor.is_hod():
        asset.approved_by = actor.id
        asset.approved_at = now
    else:
        asset.approved_by_lab_incharge = actor.id
        asset.approved_at_lab_incharge = now
    asset.refresh_approval()
    db.session.flush()

    new = asset.to_dict()
    action = 'approve' if asset.approved and not old['approved'] else 'update'
    log_activity(actor, action, 'asset', asset.id, asset.asset_id, old_values=old, new_values=new)
    commit(('assets', UPDATE, new, old))
    return asset


def _delete(asset, actor):
    """Archive the asset into deleted_assets, then remove it from the register."""
    old = asset.to_dict()
    db.session.add(DeletedAsset.from_asset(asset, actor))
    db.session.delete(asset)
    log_activity(
        actor, 'delete', 'asset', old['id'], old['asset_id'] or old['name_of_supply'],
        old_values=old, severity_level='warning'
    )
    return ('assets', DELETE, None, old)


def delete_asset(asset_id, actor):
    asset = get_asset(asset_id)
    require(can_delete_asset(actor, asset), "You do not have permission to delete this asset")
    commit(_delete(asset, actor))


def delete_assets(asset_ids, actor):
    """Delete the permitted subset of a selection.

    Returns:
        tuple: (deleted ids, skipped ids)
    """
    deleted, skipped, changes = [], [], []
    for asset_id in asset_ids:
        asset = db.session.get(Asset, asset_id)
        if asset is None or not can_delete_asset(actor, asset):
            skipped.append(asset_id)
            continue
        changes.append(_delete(asset, actor))
        deleted.append(asset_id)
    if changes:
        commit(*changes)
    return deleted, skipped
