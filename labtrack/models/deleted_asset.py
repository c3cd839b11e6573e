# labtrack/models/deleted_asset.py

from datetime import date, datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id

# Columns copied from the asset row when it is archived
SNAPSHOT_FIELDS = (
    'sr_no', 'date', 'name_of_supply', 'asset_type', 'invoice_number',
    'description', 'rate', 'total_amount', 'asset_id', 'remark',
    'is_consumable', 'allocated_lab', 'created_by', 'approved',
    'approved_by', 'approved_at', 'approved_by_lab_incharge',
    'approved_at_lab_incharge'
)


class DeletedAsset(SerializerMixin, db.Model):
    """Archived copy of a deleted asset, kept until the HOD restores or purges it."""
    __tablename__ = 'deleted_assets'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    # the asset row is gone, so this is not a foreign key
    original_asset_id = db.Column(db.String(36), nullable=False, index=True)
    sr_no = db.Column(db.Integer)
    date = db.Column(db.Date, nullable=False, default=date.today)
    name_of_supply = db.Column(db.String(200), nullable=False)
    asset_type = db.Column(db.String(36), db.ForeignKey('asset_types.id'), nullable=False)
    invoice_number = db.Column(db.String(100))
    description = db.Column(db.Text)
    rate = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    asset_id = db.Column(db.String(120))
    remark = db.Column(db.Text)
    is_consumable = db.Column(db.Boolean, nullable=False, default=False)
    allocated_lab = db.Column(
        db.String(36),
        db.ForeignKey('labs.id'),
        nullable=False,
        index=True
    )
    created_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id', ondelete='SET NULL'))
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id', ondelete='SET NULL'))
    approved_at = db.Column(db.DateTime)
    approved_by_lab_incharge = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    approved_at_lab_incharge = db.Column(db.DateTime)

    deleted_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id', ondelete='SET NULL'))
    deleted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    hod_approval = db.Column(db.Boolean, nullable=False, default=False, index=True)
    hod_approved_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    hod_approved_at = db.Column(db.DateTime)
    restored = db.Column(db.Boolean, nullable=False, default=False, index=True)
    restored_at = db.Column(db.DateTime)
    restored_by = db.Column(db.String(36), db.ForeignKey('user_profiles.id', ondelete='SET NULL'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lab = db.relationship('Lab')
    type = db.relationship('AssetType', lazy='joined')
    deleter = db.relationship('User', foreign_keys=[deleted_by])

    @classmethod
    def from_asset(cls, asset, actor):
        archived = cls(original_asset_id=asset.id, deleted_by=actor.id if actor else None)
        for field in SNAPSHOT_FIELDS:
            setattr(archived, field, getattr(asset, field))
        return archived

    @property
    def status(self):
        if self.restored:
            return 'restored'
        return 'approved' if self.hod_approval else 'pending'

    def __repr__(self):
        return f'<DeletedAsset {self.asset_id or self.original_asset_id}>'
