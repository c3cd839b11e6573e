# labtrack/models/base.py

import uuid
from datetime import date, datetime
from decimal import Decimal


def new_id():
    """Primary keys are UUID strings, shared with the hosted backend."""
    return str(uuid.uuid4())


def _json_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class SerializerMixin:
    """Column-only snapshot used for audit payloads and realtime events."""

    def to_dict(self):
        return {
            column.key: _json_value(getattr(self, column.key))
            for column in self.__mapper__.column_attrs
        }
