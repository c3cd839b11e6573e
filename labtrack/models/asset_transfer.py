# labtrack/models/asset_transfer.py

from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy.orm import validates


class AssetTransfer(SerializerMixin, db.Model):
    __tablename__ = 'asset_transfers'

    PENDING = 'pending'
    RECEIVED = 'received'
    STATUSES = (PENDING, RECEIVED)

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    asset_id = db.Column(
        db.String(36),
        db.ForeignKey('assets.id', ondelete='CASCADE'),
        index=True
    )
    from_lab = db.Column(db.String(36), db.ForeignKey('labs.id'), nullable=False, index=True)
    to_lab = db.Column(db.String(36), db.ForeignKey('labs.id'), nullable=False, index=True)
    initiated_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    initiated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    received_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    received_at = db.Column(db.DateTime)
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    asset = db.relationship(
        'Asset',
        backref=db.backref('transfers', cascade='all, delete-orphan', lazy='dynamic')
    )
    source_lab = db.relationship('Lab', foreign_keys=[from_lab])
    destination_lab = db.relationship('Lab', foreign_keys=[to_lab])
    initiator = db.relationship('User', foreign_keys=[initiated_by])
    receiver = db.relationship('User', foreign_keys=[received_by])

    @validates('status')
    def validate_status(self, key, value):
        if value not in self.STATUSES:
            raise ValueError(f"Invalid transfer status: {value}")
        # received is terminal
        if self.status == self.RECEIVED and value != self.RECEIVED:
            raise ValueError("A received transfer cannot go back to pending")
        return value

    @property
    def is_pending(self):
        return self.status == self.PENDING

    def __repr__(self):
        return f'<AssetTransfer {self.from_lab} -> {self.to_lab} ({self.status})>'
