# labtrack/transfers/routes.py

from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from labtrack.transfers import bp
from labtrack.transfers.forms import TransferForm
from labtrack.errors import ServiceError
from labtrack.extensions import db, limiter
from labtrack.models import Lab
from labtrack.services import transfers as transfer_service
from labtrack.services.assets import get_asset
from labtrack.services.permissions import can_receive_transfer


@bp.route('/')
@login_required
def list_transfers():
    filters = {
        key: request.args.get(key)
        for key in ('status', 'from_lab', 'to_lab', 'asset_id', 'lab')
    }
    return render_template(
        'transfers/list.html',
        title='Transfers',
        transfers=transfer_service.list_transfers(filters),
        filters=filters,
        labs=Lab.query.order_by(Lab.lab_identifier).all(),
        can_receive=can_receive_transfer
    )


@bp.route('/new/<asset_id>', methods=['GET', 'POST'])
@login_required
@limiter.limit("20 per hour")
def initiate_transfer(asset_id):
    """Transfer an asset to another lab."""
    asset = get_asset(asset_id)
    form = TransferForm(source_lab_id=asset.allocated_lab)

    if form.validate_on_submit():
        try:
            transfer_service.initiate_transfer(asset.id, form.to_lab.data, current_user)
            flash('Transfer initiated, waiting for the receiving lab', 'success')
            return redirect(url_for('transfers.list_transfers'))
        except ServiceError as e:
            db.session.rollback()
            flash(str(e), 'warning')
        except SQLAlchemyError as db_err:
            db.session.rollback()
            current_app.logger.exception(f"DB error during transfer: {db_err}")
            flash('Database error during transfer. Please try again.', 'danger')

    return render_template(
        'transfers/form.html', title='Transfer Asset', form=form, asset=asset
    )


@bp.route('/<transfer_id>/receive', methods=['POST'])
@login_required
def receive_transfer(transfer_id):
    try:
        transfer = transfer_service.receive_transfer(transfer_id, current_user)
        flash(f'Asset received as {transfer.asset.asset_id}', 'success')
    except ServiceError as e:
        db.session.rollback()
        flash(str(e), 'warning')
    except SQLAlchemyError as db_err:
        db.session.rollback()
        current_app.logger.exception(f"DB error while receiving transfer: {db_err}")
        flash('Database error while receiving the transfer.', 'danger')
    return redirect(url_for('transfers.list_transfers'))


@bp.route('/<transfer_id>/delete', methods=['POST'])
@login_required
def delete_transfer(transfer_id):
    try:
        transfer_service.delete_transfer(transfer_id, current_user)
        flash('Transfer deleted', 'success')
    except ServiceError as e:
        db.session.rollback()
        flash(str(e), 'warning')
    return redirect(url_for('transfers.list_transfers'))
