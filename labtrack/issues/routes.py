# labtrack/issues/routes.py

from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from labtrack.issues import bp
from labtrack.issues.forms import AssetIssueForm, IssueStatusForm, LabIssueForm
from labtrack.errors import ServiceError
from labtrack.extensions import db, limiter
from labtrack.models import Lab
from labtrack.services import issues as issue_service
from labtrack.services.assets import get_asset
from labtrack.utils import form_payload


def _fail(message, error):
    db.session.rollback()
    if isinstance(error, SQLAlchemyError):
        current_app.logger.exception(error)
        flash(f'DB error: {message}', 'error')
    else:
        flash(f'{message}: {str(error)}', 'error')


@bp.route('/')
@login_required
def list_issues():
    """Asset issues and lab issues side by side."""
    asset_filters = {
        key: request.args.get(key) for key in ('status', 'lab', 'asset_id', 'search')
    }
    lab_filters = {
        'lab_id': request.args.get('lab'),
        'status': request.args.get('lab_status'),
        'priority': request.args.get('priority'),
        'sort_by': request.args.get('sort_by'),
        'sort_order': request.args.get('sort_order'),
    }
    return render_template(
        'issues/list.html',
        title='Issues',
        asset_issues=issue_service.list_asset_issues(asset_filters),
        lab_issues=issue_service.list_lab_issues(lab_filters),
        filters=asset_filters,
        labs=Lab.query.order_by(Lab.lab_identifier).all(),
        status_form=IssueStatusForm()
    )


@bp.route('/asset/<asset_id>/report', methods=['GET', 'POST'])
@login_required
@limiter.limit("30 per hour")
def report_asset_issue(asset_id):
    asset = get_asset(asset_id)
    form = AssetIssueForm()
    if form.validate_on_submit():
        try:
            issue_service.report_asset_issue(asset.id, form_payload(form), current_user)
            flash('Issue reported', 'success')
            return redirect(url_for('assets.asset_detail', asset_id=asset.id))
        except (ServiceError, ValueError, SQLAlchemyError) as e:
            _fail('Could not report issue', e)
    return render_template(
        'issues/asset_issue_form.html', title='Report Issue', form=form, asset=asset
    )


@bp.route('/asset-issue/<issue_id>/status', methods=['POST'])
@login_required
def update_asset_issue(issue_id):
    form = IssueStatusForm()
    if form.validate_on_submit():
        try:
            payload = form_payload(form)
            if payload.get('cost_required') is None:
                payload.pop('cost_required', None)
            issue_service.update_asset_issue(issue_id, payload, current_user)
            flash('Issue updated', 'success')
        except (ServiceError, ValueError, SQLAlchemyError) as e:
            _fail('Could not update issue', e)
    else:
        flash('Please choose a valid status', 'error')
    return redirect(request.referrer or url_for('issues.list_issues'))


@bp.route('/asset-issue/<issue_id>/resolve', methods=['POST'])
@login_required
def resolve_asset_issue(issue_id):
    try:
        issue_service.resolve_asset_issue(
            issue_id,
            current_user,
            remark=request.form.get('remark') or None,
            cost_required=request.form.get('cost_required') or None
        )
        flash('Issue resolved', 'success')
    except (ServiceError, ValueError, SQLAlchemyError) as e:
        _fail('Could not resolve issue', e)
    return redirect(request.referrer or url_for('issues.list_issues'))


@bp.route('/asset-issue/<issue_id>/delete', methods=['POST'])
@login_required
def delete_asset_issue(issue_id):
    try:
        issue_service.delete_asset_issue(issue_id, current_user)
        flash('Issue deleted', 'success')
    except (ServiceError, SQLAlchemyError) as e:
        _fail('Could not delete issue', e)
    return redirect(url_for('issues.list_issues'))


@bp.route('/lab/new', methods=['GET', 'POST'])
@login_required
def add_lab_issue():
    form = LabIssueForm()
    if request.method == 'GET' and current_user.lab_id:
        form.lab_id.data = current_user.lab_id
    if form.validate_on_submit():
        try:
            payload = form_payload(form)
            payload.pop('status', None)
            issue_service.create_lab_issue(payload, current_user)
            flash('Lab issue reported', 'success')
            return redirect(url_for('issues.list_issues'))
        except (ServiceError, ValueError, SQLAlchemyError) as e:
            _fail('Could not report lab issue', e)
    return render_template('issues/lab_issue_form.html', title='Report Lab Issue', form=form)


@bp.route('/lab/<issue_id>/edit', methods=['GET', 'POST'])
@login_required
def edit_lab_issue(issue_id):
    issue = issue_service.get_lab_issue(issue_id)
    form = LabIssueForm(obj=issue)
    if form.validate_on_submit():
        try:
            payload = form_payload(form)
            payload.pop('lab_id', None)
            issue_service.update_lab_issue(issue.id, payload, current_user)
            flash('Lab issue updated', 'success')
            return redirect(url_for('issues.list_issues'))
        except (ServiceError, ValueError, SQLAlchemyError) as e:
            _fail('Could not update lab issue', e)
    return render_template(
        'issues/lab_issue_form.html', title='Edit Lab Issue', form=form, issue=issue
    )


@bp.route('/lab/<issue_id>/delete', methods=['POST'])
@login_required
def delete_lab_issue(issue_id):
    try:
        issue_service.delete_lab_issue(issue_id, current_user)
        flash('Lab issue deleted', 'success')
    except (ServiceError, SQLAlchemyError) as e:
        _fail('Could not delete lab issue', e)
    return redirect(url_for('issues.list_issues'))
