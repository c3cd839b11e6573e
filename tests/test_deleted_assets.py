import pytest
from conftest import make_asset_payload
from labtrack.errors import PermissionDeniedError, WorkflowError
from labtrack.extensions import db
from labtrack.models import ActivityLog, Asset, DeletedAsset
from labtrack.services import deleted_assets as archive
from labtrack.services import labs as lab_service
from labtrack.services.asset_types import delete_asset_type
from labtrack.services.assets import approve_asset, create_asset, delete_asset


@pytest.fixture
def archived(users, ids):
    """An asset approved by the HOD and then deleted by the HOD."""
    asset = create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_a)
    approve_asset(asset.id, users.hod)
    delete_asset(asset.id, users.hod)
    return DeletedAsset.query.filter_by(original_asset_id=asset.id).one()


def test_list_deleted_assets(users, ids, archived):
    other = create_asset(
        make_asset_payload(ids.lab_b, ids.pc, name_of_supply='GPU server'), users.assistant_b
    )
    delete_asset(other.id, users.assistant_b)
    archive.approve_deletion(archived.id, users.hod)

    listed = archive.list_deleted_assets()
    # pending approvals come first
    assert [row.name_of_supply for row in listed] == ['GPU server', 'Dell OptiPlex 7090']
    assert [row.id for row in archive.list_deleted_assets({'lab': ids.lab_a})] == [archived.id]
    assert len(archive.list_deleted_assets({'search': 'gpu'})) == 1


def test_approve_deletion(users, archived):
    with pytest.raises(PermissionDeniedError):
        archive.approve_deletion(archived.id, users.incharge_a)

    approved = archive.approve_deletion(archived.id, users.hod)
    assert approved.hod_approval is True
    assert approved.hod_approved_by == users.hod.id
    assert approved.hod_approved_at is not None
    assert approved.status == 'approved'

    with pytest.raises(WorkflowError):
        archive.approve_deletion(archived.id, users.hod)
    assert ActivityLog.query.filter_by(
        entity_type='deleted_asset', action_type='approve'
    ).count() == 1


def test_restore_deleted_asset(users, ids, archived):
    with pytest.raises(PermissionDeniedError):
        archive.restore_deleted_asset(archived.id, users.assistant_a)

    restored = archive.restore_deleted_asset(archived.id, users.hod)
    assert restored.id != archived.original_asset_id
    assert restored.allocated_lab == ids.lab_a
    assert restored.name_of_supply == 'Dell OptiPlex 7090'
    assert restored.asset_id == 'RSCOE/CSBS/CL1/PC-1'
    assert restored.created_by == users.assistant_a.id
    assert restored.approved_by == users.hod.id
    assert restored.approved is False
    assert restored.rate == restored.total_amount

    record = db.session.get(DeletedAsset, archived.id)
    assert record.restored is True
    assert record.restored_by == users.hod.id
    assert archive.list_deleted_assets() == []
    assert len(archive.list_deleted_assets({'include_restored': 'true'})) == 1

    log = ActivityLog.query.filter_by(action_type='restore').one()
    assert log.entity_id == restored.id
    assert log.extra['original_deleted_asset_id'] == archived.id

    with pytest.raises(WorkflowError):
        archive.restore_deleted_asset(archived.id, users.hod)
    assert Asset.query.count() == 1


def test_restored_asset_gets_next_code(users, ids, archived):
    create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_a)
    restored = archive.restore_deleted_asset(archived.id, users.hod)
    assert restored.asset_id == 'RSCOE/CSBS/CL1/PC-2'


def test_purge_deleted_asset(users, archived):
    with pytest.raises(WorkflowError):
        archive.purge_deleted_asset(archived.id, users.hod)

    archive.approve_deletion(archived.id, users.hod)
    with pytest.raises(PermissionDeniedError):
        archive.purge_deleted_asset(archived.id, users.incharge_a)
    archive.purge_deleted_asset(archived.id, users.hod)
    assert DeletedAsset.query.count() == 0


def test_archived_assets_keep_lab_and_type_referenced(users, ids, archived):
    assert 'deleted_assets' in lab_service.lab_references(ids.lab_a)
    with pytest.raises(WorkflowError):
        delete_asset_type(ids.pc, users.hod)
