# labtrack/utils.py

from datetime import datetime
import pytz
from flask import current_app, has_app_context, has_request_context, request


def format_timestamp(timestamp):
    """Convert a naive UTC timestamp to the configured local timezone.

    Args:
        timestamp: UTC datetime object

    Returns:
        datetime: Localized datetime, or None when timestamp is None
    """
    if timestamp is None:
        return None
    tz_name = current_app.config['TIMEZONE'] if has_app_context() else 'UTC'
    local_tz = pytz.timezone(tz_name)
    if timestamp.tzinfo is None:
        timestamp = pytz.utc.localize(timestamp)
    return timestamp.astimezone(local_tz)


def local_now():
    return format_timestamp(datetime.utcnow())


def client_info():
    """IP address and user agent of the current request, if any."""
    if not has_request_context():
        return {}
    return {
        'ip_address': request.headers.get('X-Forwarded-For', request.remote_addr),
        'user_agent': request.headers.get('User-Agent'),
    }


def form_payload(form):
    """Field data of a submitted form, without the button and CSRF token."""
    return {
        name: value for name, value in form.data.items()
        if name not in ('submit', 'csrf_token')
    }
