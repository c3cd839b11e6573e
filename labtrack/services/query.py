# labtrack/services/query.py
"""Filter helpers shared by the list operations.

Each helper leaves the query untouched when the filter value is empty, so
list functions can pass request arguments straight through.
"""

from datetime import date, datetime, time
from sqlalchemy import or_

EMPTY = (None, '', 'all')


def is_empty(value):
    return value is None or (isinstance(value, str) and value.strip() in EMPTY)


def as_bool(value):
    """Parse a filter flag, returning None when the filter is unset."""
    if is_empty(value):
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def as_date(value):
    if is_empty(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def as_datetime(value, end_of_day=False):
    """Accept a datetime, a date or an ISO string; dates cover the whole day."""
    if is_empty(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min)
    text = str(value).strip()
    if len(text) == 10:
        return as_datetime(date.fromisoformat(text), end_of_day)
    return datetime.fromisoformat(text)


def eq(query, column, value):
    if is_empty(value):
        return query
    return query.filter(column == value)


def ilike(query, columns, term):
    if is_empty(term):
        return query
    pattern = f"%{term.strip()}%"
    return query.filter(or_(*[column.ilike(pattern) for column in columns]))


def between(query, column, start=None, end=None):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def order(query, model, sort_by, sort_order, allowed, default):
    if sort_by not in allowed:
        sort_by = default
    column = getattr(model, sort_by)
    if sort_order == 'asc':
        return query.order_by(column.asc())
    return query.order_by(column.desc())


def window(query, limit, offset=0):
    """Inclusive row range offset .. offset + limit - 1."""
    offset = max(int(offset or 0), 0)
    if limit:
        query = query.offset(offset).limit(int(limit))
    elif offset:
        query = query.offset(offset)
    return query
