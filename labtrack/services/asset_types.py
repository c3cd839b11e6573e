# labtrack/services/asset_types.py

from labtrack.extensions import db
from labtrack.errors import WorkflowError
from labtrack.models import Asset, AssetType, DeletedAsset
from labtrack.services.activity_logs import log_activity
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import can_manage_asset_types, require
from labtrack.socket_events import DELETE, INSERT, UPDATE


def list_asset_types():
    return AssetType.query.order_by(AssetType.name.asc()).all()


def get_asset_type(asset_type_id):
    return get_or_raise(AssetType, asset_type_id, 'Asset type')


def _check_unique(name, identifier, exclude_id=None):
    query = AssetType.query.filter(
        (AssetType.name == name) | (AssetType.identifier == identifier)
    )
    if exclude_id:
        query = query.filter(AssetType.id != exclude_id)
    if query.first():
        raise WorkflowError(
            f"An asset type named {name} or with identifier {identifier} already exists"
        )


def create_asset_type(payload, actor):
    require(can_manage_asset_types(actor), "Only the HOD can manage asset types")
    name = (payload.get('name') or '').strip()
    identifier = (payload.get('identifier') or '').strip().upper()
    if not name:
        raise WorkflowError("Asset type name is required")
    _check_unique(name, identifier)

    asset_type = AssetType(name=name, identifier=identifier, created_by=actor.id)
    db.session.add(asset_type)
    db.session.flush()

    new = asset_type.to_dict()
    log_activity(actor, 'insert', 'asset_type', asset_type.id, name, new_values=new)
    commit(('asset_types', INSERT, new, None))
    return asset_type


def update_asset_type(asset_type_id, patch, actor):
    require(can_manage_asset_types(actor), "Only the HOD can manage asset types")
    asset_type = get_asset_type(asset_type_id)
    name = (patch.get('name') or asset_type.name).strip()
    identifier = (patch.get('identifier') or asset_type.identifier).strip().upper()
    _check_unique(name, identifier, exclude_id=asset_type.id)

    old = asset_type.to_dict()
    asset_type.name = name
    asset_type.identifier = identifier
    db.session.flush()

    new = asset_type.to_dict()
    log_activity(actor, 'update', 'asset_type', asset_type.id, name, old_values=old, new_values=new)
    commit(('asset_types', UPDATE, new, old))
    return asset_type


def delete_asset_type(asset_type_id, actor):
    require(can_manage_asset_types(actor), "Only the HOD can manage asset types")
    asset_type = get_asset_type(asset_type_id)
    in_use = Asset.query.filter_by(asset_type=asset_type.id).count()
    in_use += DeletedAsset.query.filter_by(asset_type=asset_type.id).count()
    if in_use:
        raise WorkflowError(
            f"Asset type {asset_type.name} is used by {in_use} asset(s)"
        )

    old = asset_type.to_dict()
    db.session.delete(asset_type)
    log_activity(
        actor, 'delete', 'asset_type', old['id'], old['name'],
        old_values=old, severity_level='warning'
    )
    commit(('asset_types', DELETE, None, old))


def seed_asset_types():
    created = []
    for name, identifier in AssetType.PREDEFINED_TYPES:
        if AssetType.query.filter_by(identifier=identifier).first():
            continue
        asset_type = AssetType(name=name, identifier=identifier)
        db.session.add(asset_type)
        created.append(asset_type)
    commit()
    return created
