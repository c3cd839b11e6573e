# labtrack/users/routes.py

from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from labtrack.users import bp
from labtrack.users.forms import UserForm
from labtrack.auth.decorators import hod_required
from labtrack.errors import ServiceError
from labtrack.extensions import db, limiter
from labtrack.models import Lab, User
from labtrack.services import users as user_service
from labtrack.utils import form_payload


def _fail(message, error):
    db.session.rollback()
    current_app.logger.error(f"{message}: {str(error)}")
    flash(f'{message}: {str(error)}', 'error')


@bp.route('/')
@login_required
@hod_required
def list_users():
    filters = {key: request.args.get(key) for key in ('search', 'role', 'lab', 'is_active')}
    return render_template(
        'users/list.html',
        title='Users',
        users=user_service.list_users(filters),
        filters=filters,
        labs=Lab.query.order_by(Lab.lab_identifier).all(),
        roles=User.ROLES
    )


@bp.route('/add', methods=['GET', 'POST'])
@login_required
@hod_required
@limiter.limit("20 per hour")
def add_user():
    form = UserForm(require_password=True)
    if form.validate_on_submit():
        try:
            user = user_service.create_user(form_payload(form), current_user)
            flash(f'User {user.email} added as {user.role}', 'success')
            return redirect(url_for('users.list_users'))
        except (ServiceError, ValueError) as e:
            _fail('Could not add user', e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(e)
            flash('DB error while adding user.', 'error')

    return render_template('users/form.html', title='Add User', form=form)


@bp.route('/<user_id>/edit', methods=['GET', 'POST'])
@login_required
@hod_required
def edit_user(user_id):
    user = user_service.get_user(user_id)
    form = UserForm(obj=user)
    if request.method == 'GET':
        form.lab_id.data = user.lab_id or ''
    if form.validate_on_submit():
        try:
            user_service.update_user(user.id, form_payload(form), current_user)
            flash('User updated successfully', 'success')
            return redirect(url_for('users.list_users'))
        except (ServiceError, ValueError) as e:
            _fail('Could not update user', e)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(e)
            flash('DB error while updating user.', 'error')

    return render_template('users/form.html', title='Edit User', form=form, user=user)


@bp.route('/<user_id>/toggle-active', methods=['POST'])
@login_required
@hod_required
def toggle_active(user_id):
    try:
        user = user_service.get_user(user_id)
        user = user_service.set_user_active(user.id, not user.is_active, current_user)
        flash(f"User {user.email} {'activated' if user.is_active else 'deactivated'}", 'success')
    except ServiceError as e:
        _fail('Could not change user status', e)
    return redirect(url_for('users.list_users'))


@bp.route('/<user_id>/delete', methods=['POST'])
@login_required
@hod_required
@limiter.limit("10 per hour")
def delete_user(user_id):
    try:
        user_service.delete_user(user_id, current_user)
        flash('User deleted successfully', 'success')
    except ServiceError as e:
        _fail('Could not delete user', e)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(e)
        flash('DB error while deleting user.', 'error')
    return redirect(url_for('users.list_users'))
