from functools import wraps
from flask import abort, flash, redirect, url_for
from flask_login import current_user


def roles_required(*roles):
    """Decorator to restrict a view to users holding one of `roles`.

    Anonymous users are sent to the login page; logged-in users with
    another role get a 403 Forbidden response.

    Args:
        roles: Role names from User.ROLES

    Returns:
        decorator: The view decorator
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                flash('Please log in to access this page.', 'warning')
                return redirect(url_for('auth.login'))

            if current_user.role not in roles:
                abort(403)  # Forbidden

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def hod_required(f):
    """Decorator to restrict access to the Head of Department."""
    return roles_required('HOD')(f)
