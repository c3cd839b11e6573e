# labtrack/models/asset.py

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy.orm import validates
from sqlalchemy import event, func

ASSET_NUMBER_RE = re.compile(r'-(\d+)$')


class Asset(SerializerMixin, db.Model):
    __tablename__ = 'assets'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sr_no = db.Column(db.Integer, unique=True, index=True)
    date = db.Column(db.Date, nullable=False, default=date.today)
    name_of_supply = db.Column(db.String(200), nullable=False)
    asset_type = db.Column(
        db.String(36),
        db.ForeignKey('asset_types.id'),
        nullable=False,
        index=True
    )
    invoice_number = db.Column(db.String(100))
    description = db.Column(db.Text)
    rate = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    asset_id = db.Column(db.String(120), index=True)
    remark = db.Column(db.Text)
    is_consumable = db.Column(db.Boolean, nullable=False, default=False)
    allocated_lab = db.Column(
        db.String(36),
        db.ForeignKey('labs.id'),
        nullable=False,
        index=True
    )
    created_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL'),
        index=True
    )

    # HOD slot and Lab Incharge slot; `approved` needs both
    approved = db.Column(db.Boolean, nullable=False, default=False, index=True)
    approved_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    approved_at = db.Column(db.DateTime)
    approved_by_lab_incharge = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    approved_at_lab_incharge = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    type = db.relationship('AssetType', lazy='joined')
    creator = db.relationship('User', foreign_keys=[created_by])
    approver = db.relationship('User', foreign_keys=[approved_by])
    approver_lab_incharge = db.relationship(
        'User', foreign_keys=[approved_by_lab_incharge]
    )

    @validates('name_of_supply')
    def validate_name_of_supply(self, key, value):
        if not value or not value.strip():
            raise ValueError("Name of supply cannot be empty")
        return value.strip()

    @validates('rate')
    def validate_rate(self, key, value):
        try:
            value = Decimal(str(value)).quantize(Decimal('0.01'))
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError("Rate must be a number")
        if value < 0:
            raise ValueError("Rate cannot be negative")
        # total_amount mirrors rate, one asset row is one item
        self.total_amount = value
        return value

    def refresh_approval(self):
        """Re-derive the aggregate flag from the two approval slots."""
        self.approved = bool(self.approved_by and self.approved_by_lab_incharge)
        return self.approved

    @property
    def approval_status(self):
        if self.approved:
            return 'approved'
        if self.approved_by or self.approved_by_lab_incharge:
            return 'partially_approved'
        return 'pending'

    @property
    def asset_number(self):
        """Trailing sequence number of the asset code, if any."""
        return parse_asset_number(self.asset_id)

    def __repr__(self):
        return f'<Asset {self.asset_id or self.id}>'


def parse_asset_number(asset_code):
    if not asset_code:
        return None
    match = ASSET_NUMBER_RE.search(asset_code)
    return int(match.group(1)) if match else None


@event.listens_for(Asset, 'before_insert')
def assign_serial_number(mapper, connection, target):
    """Emulate a serial column, SQLite has no sequences."""
    if target.sr_no is None:
        current = connection.execute(
            db.select(func.max(Asset.sr_no))
        ).scalar()
        target.sr_no = (current or 0) + 1
