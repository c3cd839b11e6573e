from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_user, logout_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from labtrack.auth import bp
from labtrack.auth.forms import LoginForm
from labtrack.models.user import User
from labtrack.extensions import db, limiter
from labtrack.services.activity_logs import (
    log_failed_login, log_user_login, log_user_logout
)


@bp.route('/login', methods=['GET', 'POST'])
@limiter.limit("5 per minute")  # Protect against brute force
def login():
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None or not user.is_active or not user.check_password(form.password.data):
            try:
                log_failed_login(email, 'Invalid email or password')
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.error(f"Could not log failed login: {str(e)}")
            flash('Invalid email or password', 'error')
            return render_template('auth/login.html', form=form, title='Sign In')

        login_user(user, remember=form.remember_me.data)
        user.update_last_login()
        log_user_login(user)

        next_page = request.args.get('next')
        if not next_page or not next_page.startswith('/'):
            next_page = url_for('main.dashboard')
        return redirect(next_page)

    return render_template('auth/login.html', form=form, title='Sign In')


@bp.route('/logout')
@login_required
def logout():
    log_user_logout(current_user._get_current_object())
    logout_user()
    return redirect(url_for('main.index'))
