# labtrack/services/transfers.py

from datetime import datetime
from flask import current_app
from labtrack.extensions import db
from labtrack.errors import WorkflowError
from labtrack.models import Asset, AssetTransfer, Lab
from labtrack.services import query as q
from labtrack.services.activity_logs import log_activity
from labtrack.services.assets import generate_asset_code
from labtrack.services.base import commit, get_or_raise
from labtrack.services.permissions import require
from labtrack.socket_events import DELETE, INSERT, UPDATE


def list_transfers(filters=None):
    """Transfers matching the filters, newest first.

    `lab` matches transfers on either side of the move.
    """
    filters = filters or {}
    query = AssetTransfer.query
    query = q.eq(query, AssetTransfer.status, filters.get('status'))
    query = q.eq(query, AssetTransfer.from_lab, filters.get('from_lab'))
    query = q.eq(query, AssetTransfer.to_lab, filters.get('to_lab'))
    query = q.eq(query, AssetTransfer.asset_id, filters.get('asset_id'))
    lab = filters.get('lab')
    if not q.is_empty(lab):
        query = query.filter(
            (AssetTransfer.from_lab == lab) | (AssetTransfer.to_lab == lab)
        )
    query = query.order_by(AssetTransfer.initiated_at.desc())
    return q.window(query, filters.get('limit'), filters.get('offset')).all()


def get_transfer(transfer_id):
    return get_or_raise(AssetTransfer, transfer_id, 'Transfer')


def _transfer_name(asset):
    return asset.asset_id or asset.name_of_supply


def pending_transfer_for(asset_id):
    return AssetTransfer.query.filter_by(
        asset_id=asset_id, status=AssetTransfer.PENDING
    ).first()


def initiate_transfer(asset_id, to_lab, actor):
    """Start moving an asset to another lab.

    Args:
        asset_id: Asset being moved
        to_lab: Destination lab id
        actor: Lab Assistant of the asset's current lab

    Returns:
        AssetTransfer: the pending transfer
    """
    asset = get_or_raise(Asset, asset_id, 'Asset')
    destination = get_or_raise(Lab, to_lab, 'Lab')

    require(actor.is_lab_assistant(), "Only Lab Assistants can initiate transfers")
    if not actor.belongs_to_lab(asset.allocated_lab):
        raise WorkflowError("The asset is not allocated to your lab")
    if destination.id == asset.allocated_lab:
        raise WorkflowError("Source and destination labs must be different")
    if pending_transfer_for(asset.id):
        raise WorkflowError("This asset already has a pending transfer")

    transfer = AssetTransfer(
        asset_id=asset.id,
        from_lab=asset.allocated_lab,
        to_lab=destination.id,
        initiated_by=actor.id,
        initiated_at=datetime.utcnow(),
        status=AssetTransfer.PENDING
    )
    db.session.add(transfer)
    db.session.flush()

    new = transfer.to_dict()
    log_activity(
        actor, 'transfer', 'transfer', transfer.id, _transfer_name(asset),
        new_values=new,
        metadata={'description': f'Transfer to {destination.lab_identifier} initiated'}
    )
    commit(('asset_transfers', INSERT, new, None))
    return transfer


def receive_transfer(transfer_id, actor):
    """Accept a pending transfer into the destination lab.

    Stamps the receiver, marks the transfer received and moves the asset,
    re-coding it for its new lab, in one transaction.
    """
    transfer = get_transfer(transfer_id)
    if not transfer.is_pending:
        raise WorkflowError("Only pending transfers can be received")
    require(
        actor.is_lab_incharge() and actor.belongs_to_lab(transfer.to_lab),
        "Only the Lab Incharge of the destination lab can receive this transfer"
    )

    asset = transfer.asset
    old_transfer = transfer.to_dict()
    old_asset = asset.to_dict()

    transfer.status = AssetTransfer.RECEIVED
    transfer.received_by = actor.id
    transfer.received_at = datetime.utcnow()
    asset.allocated_lab = transfer.to_lab
    asset.asset_id = generate_asset_code(
        transfer.to_lab, asset.asset_type, exclude_id=asset.id
    )
    db.session.flush()

    new_transfer = transfer.to_dict()
    new_asset = asset.to_dict()
    log_activity(
        actor, 'receive', 'transfer', transfer.id, _transfer_name(asset),
        old_values=old_transfer, new_values=new_transfer
    )
    log_activity(
        actor, 'update', 'asset', asset.id, asset.asset_id,
        old_values=old_asset, new_values=new_asset, notify=False
    )
    commit(
        ('asset_transfers', UPDATE, new_transfer, old_transfer),
        ('assets', UPDATE, new_asset, old_asset)
    )
    current_app.logger.info(
        f'Transfer {transfer.id} received by {actor.email}, asset now {asset.asset_id}'
    )
    return transfer


def update_transfer(transfer_id, patch, actor):
    """Change the destination of a pending transfer, or receive it.

    A received transfer is final.
    """
    transfer = get_transfer(transfer_id)
    status = patch.get('status')
    if status == AssetTransfer.RECEIVED:
        return receive_transfer(transfer_id, actor)
    if not transfer.is_pending:
        raise WorkflowError("A received transfer cannot be changed")
    if status not in (None, AssetTransfer.PENDING):
        raise WorkflowError(f"Invalid transfer status: {status}")
    require(
        actor.is_hod() or transfer.initiated_by == actor.id,
        "Only the initiator or the HOD can change this transfer"
    )

    old = transfer.to_dict()
    to_lab = patch.get('to_lab')
    if to_lab:
        get_or_raise(Lab, to_lab, 'Lab')
        if to_lab == transfer.from_lab:
            raise WorkflowError("Source and destination labs must be different")
        transfer.to_lab = to_lab
    db.session.flush()

    new = transfer.to_dict()
    log_activity(
        actor, 'update', 'transfer', transfer.id, _transfer_name(transfer.asset),
        old_values=old, new_values=new
    )
    commit(('asset_transfers', UPDATE, new, old))
    return transfer


def delete_transfer(transfer_id, actor):
    transfer = get_transfer(transfer_id)
    if transfer.is_pending:
        allowed = actor.is_hod() or transfer.initiated_by == actor.id
    else:
        allowed = actor.is_hod()
    require(allowed, "You do not have permission to delete this transfer")

    old = transfer.to_dict()
    name = _transfer_name(transfer.asset)
    db.session.delete(transfer)
    log_activity(
        actor, 'delete', 'transfer', old['id'], name,
        old_values=old, severity_level='warning'
    )
    commit(('asset_transfers', DELETE, None, old))
