# labtrack/assets/routes.py

from flask import (
    render_template, redirect, url_for, flash, request, current_app, jsonify
)
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from labtrack.assets import bp
from labtrack.assets.forms import AssetForm, AssetTypeForm
from labtrack.auth.decorators import hod_required
from labtrack.errors import ServiceError
from labtrack.extensions import db, limiter
from labtrack.models import AssetType, Lab
from labtrack.services import asset_types as asset_type_service
from labtrack.services import assets as asset_service
from labtrack.services import deleted_assets as deleted_asset_service
from labtrack.services import permissions
from labtrack.services.activity_logs import get_entity_activity_logs
from labtrack.utils import form_payload

FILTER_KEYS = (
    'search', 'status', 'lab', 'asset_type', 'consumable',
    'date_from', 'date_to', 'sort_by', 'sort_order'
)


def _filters():
    return {key: request.args.get(key) for key in FILTER_KEYS}


def _fail(message, error):
    db.session.rollback()
    current_app.logger.error(f"{message}: {str(error)}")
    flash(f'{message}: {str(error)}', 'error')


@bp.route('/')
@login_required
def list_assets():
    """Asset register with filters."""
    filters = _filters()
    try:
        assets = asset_service.list_assets(filters)
    except ValueError as ve:
        flash(f'Invalid filter: {str(ve)}', 'error')
        assets = []
    return render_template(
        'assets/list.html',
        title='Assets',
        assets=assets,
        filters=filters,
        labs=Lab.query.order_by(Lab.lab_identifier).all(),
        asset_types=AssetType.query.order_by(AssetType.name).all(),
        can_create=current_user.lab_id is not None,
        can_edit=permissions.can_edit_asset,
        can_delete=permissions.can_delete_asset,
        can_approve=permissions.can_approve_asset,
        can_transfer=permissions.can_initiate_transfer
    )


@bp.route('/api')
@login_required
def assets_json():
    """Same filters as the register, as JSON for realtime refetches."""
    try:
        assets = asset_service.list_assets(_filters())
    except ValueError as ve:
        return jsonify({'error': f'Invalid filter: {str(ve)}'}), 400
    return jsonify([asset.to_dict() for asset in assets])


@bp.route('/add', methods=['GET', 'POST'])
@login_required
@limiter.limit("20 per hour")
def add_asset():
    if current_user.lab_id is None:
        flash('Only lab staff can add assets', 'warning')
        return redirect(url_for('assets.list_assets'))

    form = AssetForm(lab_id=current_user.lab_id)
    if form.validate_on_submit():
        try:
            asset = asset_service.create_asset(form_payload(form), current_user)
            flash(f'Asset {asset.asset_id} added successfully', 'success')
            return redirect(url_for('assets.asset_detail', asset_id=asset.id))
        except (ServiceError, ValueError) as e:
            _fail('Could not add asset', e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(e)
            flash('DB error while adding asset.', 'error')

    return render_template('assets/form.html', title='Add Asset', form=form)


@bp.route('/<asset_id>')
@login_required
def asset_detail(asset_id):
    asset = asset_service.get_asset(asset_id)
    return render_template(
        'assets/detail.html',
        title=asset.asset_id,
        asset=asset,
        transfers=asset.transfers.all(),
        issues=asset.issues.all(),
        logs=get_entity_activity_logs('asset', asset.id),
        can_edit=permissions.can_edit_asset(current_user, asset),
        can_delete=permissions.can_delete_asset(current_user, asset),
        can_approve=permissions.can_approve_asset(current_user, asset),
        can_transfer=permissions.can_initiate_transfer(current_user, asset)
    )


@bp.route('/<asset_id>/edit', methods=['GET', 'POST'])
@login_required
@limiter.limit("20 per hour")
def edit_asset(asset_id):
    asset = asset_service.get_asset(asset_id)
    if not permissions.can_edit_asset(current_user, asset):
        flash('You do not have permission to edit this asset', 'error')
        return redirect(url_for('assets.asset_detail', asset_id=asset.id))

    form = AssetForm(obj=asset, lab_id=current_user.lab_id)
    if form.validate_on_submit():
        try:
            asset_service.update_asset(asset.id, form_payload(form), current_user)
            flash('Asset updated successfully', 'success')
            return redirect(url_for('assets.asset_detail', asset_id=asset.id))
        except (ServiceError, ValueError) as e:
            _fail('Could not update asset', e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(e)
            flash('DB error while updating asset.', 'error')

    return render_template('assets/form.html', title='Edit Asset', form=form, asset=asset)


@bp.route('/<asset_id>/approve', methods=['POST'])
@login_required
def approve_asset(asset_id):
    try:
        asset = asset_service.approve_asset(asset_id, current_user)
        if asset.approved:
            flash(f'Asset {asset.asset_id} is now approved', 'success')
        else:
            flash('Approval recorded, waiting for the second approver', 'info')
    except ServiceError as e:
        _fail('Could not approve asset', e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while approving asset.', 'error')
    return redirect(request.referrer or url_for('assets.list_assets'))


@bp.route('/<asset_id>/delete', methods=['POST'])
@login_required
@limiter.limit("10 per hour")
def delete_asset(asset_id):
    try:
        asset_service.delete_asset(asset_id, current_user)
        flash('Asset deleted successfully', 'success')
    except ServiceError as e:
        _fail('Could not delete asset', e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while deleting asset.', 'error')
    return redirect(url_for('assets.list_assets'))


@bp.route('/bulk-delete', methods=['POST'])
@login_required
@limiter.limit("10 per hour")
def bulk_delete_assets():
    asset_ids = request.form.getlist('asset_ids')
    if not asset_ids:
        flash('No assets selected', 'warning')
        return redirect(url_for('assets.list_assets'))

    try:
        deleted, skipped = asset_service.delete_assets(asset_ids, current_user)
        if deleted:
            flash(f'{len(deleted)} asset(s) deleted', 'success')
        if skipped:
            flash(f'{len(skipped)} asset(s) skipped, you cannot delete them', 'warning')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while deleting assets.', 'error')
    return redirect(url_for('assets.list_assets'))


#######################################################################
# ASSET TYPES (HOD)
#######################################################################

@bp.route('/types')
@login_required
@hod_required
def list_asset_types():
    return render_template(
        'assets/types.html',
        title='Asset Types',
        asset_types=asset_type_service.list_asset_types(),
        form=AssetTypeForm()
    )


@bp.route('/types/add', methods=['POST'])
@login_required
@hod_required
def add_asset_type():
    form = AssetTypeForm()
    if form.validate_on_submit():
        try:
            asset_type = asset_type_service.create_asset_type(form_payload(form), current_user)
            flash(f'Asset type {asset_type.name} added', 'success')
        except (ServiceError, ValueError) as e:
            _fail('Could not add asset type', e)
    else:
        flash('Name and identifier are required', 'error')
    return redirect(url_for('assets.list_asset_types'))


@bp.route('/types/<asset_type_id>/edit', methods=['GET', 'POST'])
@login_required
@hod_required
def edit_asset_type(asset_type_id):
    asset_type = asset_type_service.get_asset_type(asset_type_id)
    form = AssetTypeForm(obj=asset_type)
    if form.validate_on_submit():
        try:
            asset_type_service.update_asset_type(asset_type.id, form_payload(form), current_user)
            flash('Asset type updated', 'success')
            return redirect(url_for('assets.list_asset_types'))
        except (ServiceError, ValueError) as e:
            _fail('Could not update asset type', e)
    return render_template(
        'assets/type_form.html', title='Edit Asset Type', form=form, asset_type=asset_type
    )


@bp.route('/types/<asset_type_id>/delete', methods=['POST'])
@login_required
@hod_required
def delete_asset_type(asset_type_id):
    try:
        asset_type_service.delete_asset_type(asset_type_id, current_user)
        flash('Asset type deleted', 'success')
    except ServiceError as e:
        _fail('Could not delete asset type', e)
    return redirect(url_for('assets.list_asset_types'))


#######################################################################
# DELETED ASSETS (HOD)
#######################################################################

@bp.route('/deleted')
@login_required
@hod_required
def list_deleted_assets():
    filters = {key: request.args.get(key) for key in ('search', 'lab', 'include_restored')}
    return render_template(
        'assets/deleted.html',
        title='Deleted Assets',
        deleted_assets=deleted_asset_service.list_deleted_assets(filters),
        filters=filters,
        labs=Lab.query.order_by(Lab.lab_identifier).all()
    )


@bp.route('/deleted/<deleted_asset_id>/approve', methods=['POST'])
@login_required
@hod_required
def approve_deletion(deleted_asset_id):
    try:
        deleted_asset_service.approve_deletion(deleted_asset_id, current_user)
        flash('Deletion approved successfully', 'success')
    except ServiceError as e:
        _fail('Could not approve deletion', e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while approving deletion.', 'error')
    return redirect(url_for('assets.list_deleted_assets'))


@bp.route('/deleted/<deleted_asset_id>/restore', methods=['POST'])
@login_required
@hod_required
def restore_deleted_asset(deleted_asset_id):
    try:
        asset = deleted_asset_service.restore_deleted_asset(deleted_asset_id, current_user)
        flash(f'Asset restored as {asset.asset_id}', 'success')
    except (ServiceError, ValueError) as e:
        _fail('Could not restore asset', e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while restoring asset.', 'error')
    return redirect(url_for('assets.list_deleted_assets'))


@bp.route('/deleted/<deleted_asset_id>/purge', methods=['POST'])
@login_required
@hod_required
def purge_deleted_asset(deleted_asset_id):
    try:
        deleted_asset_service.purge_deleted_asset(deleted_asset_id, current_user)
        flash('Deleted asset purged', 'success')
    except ServiceError as e:
        _fail('Could not purge deleted asset', e)
    return redirect(url_for('assets.list_deleted_assets'))
