# labtrack/labs/routes.py

from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from labtrack.labs import bp
from labtrack.labs.forms import LabForm
from labtrack.auth.decorators import hod_required
from labtrack.errors import ServiceError
from labtrack.extensions import db
from labtrack.services import labs as lab_service
from labtrack.services.issues import list_lab_issues
from labtrack.services.permissions import get_lab_permissions
from labtrack.utils import form_payload


@bp.route('/')
@login_required
def list_labs():
    filters = {
        key: request.args.get(key)
        for key in ('search', 'location', 'has_open_issues', 'sort_by', 'sort_order')
    }
    return render_template(
        'labs/list.html',
        title='Labs',
        labs=lab_service.list_labs(filters),
        filters=filters
    )


@bp.route('/<lab_id>')
@login_required
def lab_detail(lab_id):
    lab = lab_service.get_lab(lab_id)
    return render_template(
        'labs/detail.html',
        title=lab.name,
        lab=lab,
        assets=lab_service.get_lab_assets(lab.id),
        issues=list_lab_issues({'lab_id': lab.id}),
        staff=lab.staff.all(),
        permissions=get_lab_permissions(current_user, lab.id)
    )


@bp.route('/add', methods=['GET', 'POST'])
@login_required
@hod_required
def add_lab():
    """Add a new laboratory."""
    form = LabForm()
    if form.validate_on_submit():
        try:
            lab = lab_service.create_lab(form_payload(form), current_user)
            flash(f'Laboratory {lab.lab_identifier} added successfully', 'success')
            return redirect(url_for('labs.list_labs'))
        except (ServiceError, ValueError) as e:
            db.session.rollback()
            flash(str(e), 'error')
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error adding lab: {str(e)}")
            flash('An error occurred while adding the lab', 'error')

    return render_template('labs/form.html', title='Add Laboratory', form=form)


@bp.route('/<lab_id>/edit', methods=['GET', 'POST'])
@login_required
@hod_required
def edit_lab(lab_id):
    lab = lab_service.get_lab(lab_id)
    form = LabForm(obj=lab)
    if request.method == 'POST':
        # the identifier field is read-only on edit
        form.lab_identifier.data = lab.lab_identifier
    if form.validate_on_submit():
        try:
            lab_service.update_lab(lab.id, form_payload(form), current_user)
            flash('Laboratory updated successfully', 'success')
            return redirect(url_for('labs.lab_detail', lab_id=lab.id))
        except (ServiceError, ValueError) as e:
            db.session.rollback()
            flash(str(e), 'error')
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating lab: {str(e)}")
            flash('An error occurred while updating the lab', 'error')

    return render_template('labs/form.html', title='Edit Laboratory', form=form, lab=lab)


@bp.route('/<lab_id>/delete', methods=['POST'])
@login_required
@hod_required
def delete_lab(lab_id):
    try:
        lab_service.delete_lab(lab_id, current_user)
        flash('Laboratory deleted', 'success')
    except ServiceError as e:
        db.session.rollback()
        flash(str(e), 'error')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while deleting lab.', 'error')
    return redirect(url_for('labs.list_labs'))
