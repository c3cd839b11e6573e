# File: labtrack/models/activity_log.py
from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy import event
from sqlalchemy.orm import validates


class ActivityLog(SerializerMixin, db.Model):
    """Append-only audit trail of user and system actions."""
    __tablename__ = 'enhanced_activity_logs'

    SEVERITY_LEVELS = ('info', 'warning', 'error', 'critical')

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL'),
        index=True
    )
    action_type = db.Column(db.String(50), nullable=False, index=True)  # insert, update, delete, approve, ...
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(36), index=True)
    entity_name = db.Column(db.String(255))
    old_values = db.Column(db.JSON)
    new_values = db.Column(db.JSON)
    changes = db.Column(db.JSON)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(255))
    severity_level = db.Column(db.String(10), nullable=False, default='info', index=True)
    success = db.Column(db.Boolean, nullable=False, default=True)
    error_message = db.Column(db.Text)
    # `metadata` is reserved on declarative models
    extra = db.Column('metadata', db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship('User', lazy='joined')

    @validates('severity_level')
    def validate_severity_level(self, key, value):
        if value not in self.SEVERITY_LEVELS:
            raise ValueError(f"Invalid severity level: {value}")
        return value

    @property
    def description(self):
        return (self.extra or {}).get('description')

    def __repr__(self):
        return f'<ActivityLog {self.action_type} {self.entity_type} by {self.user_id}>'


@event.listens_for(ActivityLog, 'before_update')
def prevent_log_mutation(mapper, connection, target):
    raise ValueError("Activity logs are append-only")
