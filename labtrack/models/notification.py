# labtrack/models/notification.py

from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy import event, inspect


class Notification(SerializerMixin, db.Model):
    """Per-user inbox entry produced as a side effect of other writes."""
    __tablename__ = 'notifications'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    actor_id = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='CASCADE')
    )
    action_type = db.Column(db.String(50), nullable=False, index=True)
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(36))
    entity_name = db.Column(db.String(255))
    message = db.Column(db.Text)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    actor = db.relationship('User', foreign_keys=[actor_id])

    @property
    def actor_name(self):
        return self.actor.name if self.actor else ''

    def __repr__(self):
        return f'<Notification {self.action_type} for {self.user_id}>'


@event.listens_for(Notification, 'before_update')
def only_read_flag_changes(mapper, connection, target):
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        if attr.key == 'is_read':
            continue
        if state.attrs[attr.key].history.has_changes():
            raise ValueError("Only the read flag of a notification can change")
