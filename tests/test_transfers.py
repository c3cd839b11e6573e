import pytest
from conftest import make_asset_payload
from labtrack.errors import PermissionDeniedError, WorkflowError
from labtrack.extensions import db
from labtrack.models import ActivityLog, AssetTransfer, Lab
from labtrack.services import transfers as transfer_service
from labtrack.services.assets import create_asset


@pytest.fixture
def asset(users, ids):
    return create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_a)


def test_initiate_transfer(users, ids, asset):
    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)

    assert transfer.status == AssetTransfer.PENDING
    assert transfer.from_lab == ids.lab_a
    assert transfer.to_lab == ids.lab_b
    assert transfer.initiated_by == users.assistant_a.id
    # the asset stays put until the transfer is received
    assert asset.allocated_lab == ids.lab_a
    assert ActivityLog.query.filter_by(entity_id=transfer.id, action_type='transfer').count() == 1


def test_initiate_transfer_rules(users, ids, asset):
    with pytest.raises(WorkflowError):
        transfer_service.initiate_transfer(asset.id, ids.lab_a, users.assistant_a)
    with pytest.raises(WorkflowError):
        transfer_service.initiate_transfer(asset.id, ids.lab_a, users.assistant_b)
    with pytest.raises(PermissionDeniedError):
        transfer_service.initiate_transfer(asset.id, ids.lab_b, users.incharge_a)
    with pytest.raises(PermissionDeniedError):
        transfer_service.initiate_transfer(asset.id, ids.lab_b, users.hod)

    transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    with pytest.raises(WorkflowError):
        transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    assert AssetTransfer.query.count() == 1


def test_receive_transfer_moves_asset(users, ids, asset):
    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    received = transfer_service.receive_transfer(transfer.id, users.incharge_b)

    assert received.status == AssetTransfer.RECEIVED
    assert received.received_by == users.incharge_b.id
    assert received.received_at is not None
    assert asset.allocated_lab == ids.lab_b
    assert asset.asset_id == 'RSCOE/CSBS/DSL/PC-1'

    assert ActivityLog.query.filter_by(entity_id=transfer.id, action_type='receive').count() == 1
    assert ActivityLog.query.filter_by(entity_id=asset.id, action_type='update').count() == 1


def test_receive_requires_destination_incharge(users, ids, asset):
    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    for actor in (users.incharge_a, users.assistant_b, users.hod):
        with pytest.raises(PermissionDeniedError):
            transfer_service.receive_transfer(transfer.id, actor)
    assert transfer_service.get_transfer(transfer.id).is_pending


def test_received_transfer_is_final(users, ids, asset):
    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    transfer_service.receive_transfer(transfer.id, users.incharge_b)

    with pytest.raises(WorkflowError):
        transfer_service.receive_transfer(transfer.id, users.incharge_b)
    with pytest.raises(WorkflowError):
        transfer_service.update_transfer(transfer.id, {'status': 'pending'}, users.hod)
    with pytest.raises(WorkflowError):
        transfer_service.update_transfer(transfer.id, {'to_lab': ids.lab_a}, users.hod)


def test_update_transfer_destination(users, ids, asset):
    third = Lab(name='IoT Lab', lab_identifier='IOT', location='Room 202')
    db.session.add(third)
    db.session.commit()
    transfer = transfer_service.initiate_transfer(asset.id, third.id, users.assistant_a)

    with pytest.raises(PermissionDeniedError):
        transfer_service.update_transfer(transfer.id, {'to_lab': ids.lab_b}, users.assistant_b)
    moved = transfer_service.update_transfer(transfer.id, {'to_lab': ids.lab_b}, users.assistant_a)
    assert moved.to_lab == ids.lab_b
    with pytest.raises(WorkflowError):
        transfer_service.update_transfer(transfer.id, {'to_lab': ids.lab_a}, users.assistant_a)

    updated = transfer_service.update_transfer(
        transfer.id, {'status': 'received'}, users.incharge_b
    )
    assert updated.status == AssetTransfer.RECEIVED


def test_delete_transfer(users, ids, asset):
    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    with pytest.raises(PermissionDeniedError):
        transfer_service.delete_transfer(transfer.id, users.incharge_b)
    transfer_service.delete_transfer(transfer.id, users.assistant_a)
    assert AssetTransfer.query.count() == 0

    transfer = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    transfer_service.receive_transfer(transfer.id, users.incharge_b)
    with pytest.raises(PermissionDeniedError):
        transfer_service.delete_transfer(transfer.id, users.assistant_a)
    transfer_service.delete_transfer(transfer.id, users.hod)
    assert AssetTransfer.query.count() == 0


def test_list_transfers(users, ids, asset):
    outgoing = transfer_service.initiate_transfer(asset.id, ids.lab_b, users.assistant_a)
    transfer_service.receive_transfer(outgoing.id, users.incharge_b)
    incoming = transfer_service.initiate_transfer(asset.id, ids.lab_a, users.assistant_b)

    def listed(**filters):
        return [transfer.id for transfer in transfer_service.list_transfers(filters)]

    assert set(listed()) == {outgoing.id, incoming.id}
    assert listed(status='pending') == [incoming.id]
    assert listed(status='received') == [outgoing.id]
    assert listed(from_lab=ids.lab_b) == [incoming.id]
    assert listed(to_lab=ids.lab_b) == [outgoing.id]
    assert set(listed(lab=ids.lab_a)) == {outgoing.id, incoming.id}
    assert transfer_service.pending_transfer_for(asset.id).id == incoming.id
