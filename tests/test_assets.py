import pytest
from decimal import Decimal
from conftest import make_asset_payload
from labtrack.errors import NotFoundError, PermissionDeniedError, WorkflowError
from labtrack.extensions import db
from labtrack.models import ActivityLog, Asset, AssetTransfer, DeletedAsset
from labtrack.services import assets as asset_service


def _create(users, ids, **overrides):
    payload = make_asset_payload(ids.lab_a, ids.pc, **overrides)
    return asset_service.create_asset(payload, users.assistant_a)


def test_create_asset(users, ids):
    asset = _create(users, ids)

    stored = asset_service.get_asset(asset.id)
    assert stored.allocated_lab == ids.lab_a
    assert stored.rate == Decimal('55000.00')
    assert stored.total_amount == stored.rate
    assert stored.asset_id == 'RSCOE/CSBS/CL1/PC-1'
    assert stored.approved is False
    assert stored.created_by == users.assistant_a.id
    assert stored.sr_no == 1

    log = ActivityLog.query.filter_by(entity_id=asset.id, action_type='insert').one()
    assert log.entity_type == 'asset'
    assert log.new_values['asset_id'] == 'RSCOE/CSBS/CL1/PC-1'


def test_asset_codes_are_sequential_per_lab_and_type(users, ids):
    first = _create(users, ids)
    second = _create(users, ids, name_of_supply='HP EliteDesk')
    printer = _create(users, ids, name_of_supply='LaserJet', asset_type=ids.printer)
    other_lab = asset_service.create_asset(
        make_asset_payload(ids.lab_b, ids.pc), users.assistant_b
    )

    assert first.asset_id == 'RSCOE/CSBS/CL1/PC-1'
    assert second.asset_id == 'RSCOE/CSBS/CL1/PC-2'
    assert printer.asset_id == 'RSCOE/CSBS/CL1/PR-1'
    assert other_lab.asset_id == 'RSCOE/CSBS/DSL/PC-1'
    assert asset_service.generate_asset_code(ids.lab_a, ids.pc) == 'RSCOE/CSBS/CL1/PC-3'


def test_generate_code_unknown_type_uses_default_prefix(app_ctx, ids):
    assert asset_service.generate_asset_code(ids.lab_a, None) == 'RSCOE/CSBS/CL1/OT-1'


def test_create_asset_only_in_own_lab(users, ids):
    with pytest.raises(PermissionDeniedError):
        asset_service.create_asset(make_asset_payload(ids.lab_a, ids.pc), users.assistant_b)
    with pytest.raises(PermissionDeniedError):
        asset_service.create_asset(make_asset_payload(ids.lab_a, ids.pc), users.hod)
    with pytest.raises(NotFoundError):
        asset_service.create_asset(make_asset_payload('missing', ids.pc), users.assistant_a)
    assert Asset.query.count() == 0


def test_update_asset_regenerates_code_on_type_change(users, ids):
    asset = _create(users, ids)
    updated = asset_service.update_asset(
        asset.id, {'asset_type': ids.printer, 'rate': '60000'}, users.assistant_a
    )
    assert updated.asset_id == 'RSCOE/CSBS/CL1/PR-1'
    assert updated.total_amount == Decimal('60000.00')

    log = ActivityLog.query.filter_by(entity_id=asset.id, action_type='update').one()
    assert log.changes['asset_type']['new'] == ids.printer


def test_only_creator_can_edit(users, ids):
    asset = _create(users, ids)
    with pytest.raises(PermissionDeniedError):
        asset_service.update_asset(asset.id, {'remark': 'x'}, users.incharge_a)
    with pytest.raises(PermissionDeniedError):
        asset_service.update_asset(asset.id, {'remark': 'x'}, users.hod)


def test_update_cannot_move_asset_to_another_lab(users, ids):
    asset = _create(users, ids)
    with pytest.raises(WorkflowError):
        asset_service.update_asset(
            asset.id, {'allocated_lab': ids.lab_b, 'remark': 'moved'}, users.assistant_a
        )
    db.session.rollback()

    stored = db.session.get(Asset, asset.id)
    assert stored.allocated_lab == ids.lab_a
    assert stored.asset_id == 'RSCOE/CSBS/CL1/PC-1'
    assert stored.remark == ''
    assert AssetTransfer.query.count() == 0

    # resubmitting the current lab, as the edit form does, is fine
    updated = asset_service.update_asset(
        asset.id, {'allocated_lab': ids.lab_a, 'remark': 'checked'}, users.assistant_a
    )
    assert updated.remark == 'checked'
    assert updated.asset_id == 'RSCOE/CSBS/CL1/PC-1'


@pytest.mark.parametrize('order', [('hod', 'incharge_a'), ('incharge_a', 'hod')])
def test_dual_approval(users, ids, order):
    asset = _create(users, ids)

    first = asset_service.approve_asset(asset.id, getattr(users, order[0]))
    assert first.approved is False
    assert first.approval_status == 'partially_approved'

    second = asset_service.approve_asset(asset.id, getattr(users, order[1]))
    assert second.approved is True
    assert second.approved_by == users.hod.id
    assert second.approved_by_lab_incharge == users.incharge_a.id

    actions = [log.action_type for log in ActivityLog.query.filter_by(entity_id=asset.id)]
    assert actions.count('approve') == 1


def test_approval_rules(users, ids):
    asset = _create(users, ids)
    with pytest.raises(PermissionDeniedError):
        asset_service.approve_asset(asset.id, users.assistant_a)
    with pytest.raises(PermissionDeniedError):
        asset_service.approve_asset(asset.id, users.incharge_b)

    asset_service.approve_asset(asset.id, users.hod)
    with pytest.raises(PermissionDeniedError):
        asset_service.approve_asset(asset.id, users.hod)


def test_delete_permissions(users, ids):
    own = _create(users, ids)
    asset_service.delete_asset(own.id, users.assistant_a)
    assert db.session.get(Asset, own.id) is None

    hod_approved = _create(users, ids)
    asset_service.approve_asset(hod_approved.id, users.hod)
    with pytest.raises(PermissionDeniedError):
        asset_service.delete_asset(hod_approved.id, users.incharge_a)
    with pytest.raises(PermissionDeniedError):
        asset_service.delete_asset(hod_approved.id, users.assistant_a)
    asset_service.delete_asset(hod_approved.id, users.hod)

    incharge_approved = _create(users, ids)
    asset_service.approve_asset(incharge_approved.id, users.incharge_a)
    with pytest.raises(PermissionDeniedError):
        asset_service.delete_asset(incharge_approved.id, users.assistant_a)
    asset_service.delete_asset(incharge_approved.id, users.incharge_a)

    assert Asset.query.count() == 0
    assert ActivityLog.query.filter_by(action_type='delete', entity_type='asset').count() == 3

    archived = DeletedAsset.query.filter_by(original_asset_id=hod_approved.id).one()
    assert archived.asset_id == hod_approved.asset_id
    assert archived.approved_by == users.hod.id
    assert archived.deleted_by == users.hod.id
    assert archived.status == 'pending'
    assert DeletedAsset.query.count() == 3


def test_bulk_delete_skips_forbidden(users, ids):
    deletable = _create(users, ids)
    approved = _create(users, ids)
    asset_service.approve_asset(approved.id, users.hod)

    deleted, skipped = asset_service.delete_assets(
        [deletable.id, approved.id, 'missing'], users.assistant_a
    )
    assert deleted == [deletable.id]
    assert skipped == [approved.id, 'missing']
    assert Asset.query.count() == 1


def test_list_assets_filters(users, ids):
    pc = _create(users, ids, date='2024-01-10')
    toner = _create(
        users, ids, name_of_supply='Toner cartridge', asset_type=ids.printer,
        is_consumable=True, date='2024-03-01'
    )
    other = asset_service.create_asset(
        make_asset_payload(ids.lab_b, ids.pc, name_of_supply='GPU server'),
        users.assistant_b
    )
    asset_service.approve_asset(pc.id, users.hod)
    asset_service.approve_asset(pc.id, users.incharge_a)
    asset_service.approve_asset(toner.id, users.hod)

    def listed(**filters):
        return [asset.id for asset in asset_service.list_assets(filters)]

    assert listed() == [pc.id, toner.id, other.id]
    assert listed(search='toner') == [toner.id]
    assert listed(search='DSL') == [other.id]
    assert listed(lab=ids.lab_b) == [other.id]
    assert listed(asset_type=ids.printer) == [toner.id]
    assert listed(consumable='true') == [toner.id]
    assert listed(status='approved') == [pc.id]
    assert listed(status='partially_approved') == [toner.id]
    assert listed(status='pending') == [toner.id, other.id]
    assert listed(date_from='2024-02-01', date_to='2024-03-31') == [toner.id]
    assert listed(sort_by='sr_no', sort_order='desc') == [other.id, toner.id, pc.id]
    assert listed(limit=2, offset=1) == [toner.id, other.id]
