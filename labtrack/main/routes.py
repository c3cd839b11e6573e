# labtrack/main/routes.py

from flask import (
    render_template, redirect, url_for, flash, request,
    current_app, stream_with_context, Response, jsonify, make_response
)
from flask_login import login_required, current_user
from sqlalchemy.orm import joinedload

from labtrack.main import bp
from labtrack.auth.decorators import roles_required
from labtrack.errors import ServiceError
from labtrack.extensions import db, limiter
from labtrack.models import Asset, Lab, User
from labtrack.services import activity_logs as log_service
from labtrack.services import notifications as notification_service
from labtrack.services.analytics import analyze_assets, analyze_issues
from labtrack.services.export import export_assets
from labtrack.services.issues import list_asset_issues
from labtrack.services.transfers import list_transfers


@bp.route('/')
@bp.route('/index')
def index():
    """Render the home page."""
    return render_template('main/index.html', title='Home')


@bp.route('/dashboard')
@login_required
def dashboard():
    """Render the dashboard with register and issue analytics."""
    return render_template(
        'main/dashboard.html',
        title='Dashboard',
        asset_stats=analyze_assets(),
        issue_stats=analyze_issues(),
        pending_transfers=list_transfers({'status': 'pending', 'limit': 5}),
        open_issues=list_asset_issues({'status': 'open', 'limit': 5}),
        recent_activity=log_service.get_recent_activity(10)
    )


@bp.route('/theme/toggle', methods=['POST'])
def toggle_theme():
    """Flip the light/dark preference cookie."""
    name = current_app.config['THEME_COOKIE_NAME']
    theme = 'light' if request.cookies.get(name) == 'dark' else 'dark'
    response = make_response(redirect(request.referrer or url_for('main.index')))
    response.set_cookie(
        name, theme,
        max_age=current_app.config['THEME_COOKIE_MAX_AGE'],
        samesite='Lax'
    )
    return response


#######################################################################
# ACTIVITY LOGS
#######################################################################

@bp.route('/logs')
@login_required
@roles_required(User.HOD, User.LAB_INCHARGE)
def activity_logs():
    """List activity logs with filters and summary stats."""
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = current_app.config['ACTIVITY_LOG_PAGE_SIZE']
    filters = {
        key: request.args.get(key)
        for key in (
            'user_id', 'action_type', 'entity_type', 'severity_level',
            'success', 'start_date', 'end_date'
        )
    }
    filters.update(limit=per_page, offset=(page - 1) * per_page)

    search = request.args.get('q', '').strip()
    try:
        if search:
            logs = log_service.search_activity_logs(search, limit=per_page)
        else:
            logs = log_service.list_activity_logs(filters)
    except ValueError as ve:
        flash(f'Invalid filter: {str(ve)}', 'error')
        logs = []

    return render_template(
        'main/activity_logs.html',
        title='Activity Logs',
        logs=logs,
        filters=filters,
        search=search,
        page=page,
        has_next=len(logs) == per_page,
        stats=log_service.get_activity_stats(days=request.args.get('days', 30, type=int)),
        users=User.query.order_by(User.name).all()
    )


@bp.route('/logs/stats')
@login_required
@roles_required(User.HOD, User.LAB_INCHARGE)
def activity_stats():
    return jsonify(log_service.get_activity_stats(
        user_id=request.args.get('user_id'),
        days=request.args.get('days', 30, type=int)
    ))


#######################################################################
# NOTIFICATIONS
#######################################################################

@bp.route('/notifications')
@login_required
def notifications():
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = current_app.config['NOTIFICATION_PAGE_SIZE']
    items = notification_service.list_notifications(
        current_user.id, limit=per_page, offset=(page - 1) * per_page
    )
    return render_template(
        'main/notifications.html',
        title='Notifications',
        groups=notification_service.group_by_date(items),
        page=page,
        has_next=len(items) == per_page
    )


@bp.route('/notifications/<notification_id>/read', methods=['POST'])
@login_required
def mark_notification_read(notification_id):
    try:
        notification_service.mark_as_read(notification_id, current_user)
    except ServiceError as e:
        db.session.rollback()
        flash(str(e), 'error')
    if request.accept_mimetypes.best == 'application/json':
        return jsonify({'unread': notification_service.get_unread_count(current_user.id)})
    return redirect(request.referrer or url_for('main.notifications'))


@bp.route('/notifications/read-all', methods=['POST'])
@login_required
def mark_all_notifications_read():
    updated = notification_service.mark_all_as_read(current_user)
    flash(f'{updated} notification(s) marked as read', 'success')
    return redirect(url_for('main.notifications'))


@bp.route('/notifications/unread-count')
@login_required
def unread_count():
    return jsonify({'unread': notification_service.get_unread_count(current_user.id)})


#######################################################################
# EXPORT (PDF / XLSX / DOCX)
#######################################################################

def _export_response(assets, fmt, lab_identifier=None):
    try:
        stream, mimetype, filename = export_assets(assets, fmt, lab_identifier)
    except ValueError:
        return "Format not supported", 400
    return Response(
        stream_with_context(stream),
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@bp.route('/export/<lab_identifier>/<fmt>')
@login_required
@limiter.limit("10 per minute")
def export_lab(lab_identifier, fmt):
    """Export one lab's asset register."""
    lab = Lab.query.filter_by(lab_identifier=lab_identifier).first_or_404()
    assets = Asset.query.filter_by(allocated_lab=lab.id)\
        .options(joinedload(Asset.lab))\
        .order_by(Asset.sr_no)\
        .all()
    return _export_response(assets, fmt, lab.lab_identifier)


@bp.route('/export/all/<fmt>')
@login_required
@limiter.limit("5 per minute")
def export_all(fmt):
    """Export the whole asset register."""
    assets = Asset.query.options(joinedload(Asset.lab)).order_by(Asset.sr_no).all()
    if not assets:
        flash('No data available to export', 'warning')
        return redirect(url_for('main.dashboard'))
    return _export_response(assets, fmt)
