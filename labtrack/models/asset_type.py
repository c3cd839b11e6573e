# labtrack/models/asset_type.py

from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy.orm import validates


class AssetType(SerializerMixin, db.Model):
    """Category of asset; its identifier is the prefix in asset codes."""
    __tablename__ = 'asset_types'

    DEFAULT_IDENTIFIER = 'OT'

    PREDEFINED_TYPES = [
        ("Computer", "PC"),
        ("Printer", "PR"),
        ("Networking", "NW"),
        ("Projector", "PJ"),
        ("Furniture", "FR"),
        ("Other", "OT"),
    ]

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), unique=True, nullable=False)
    identifier = db.Column(db.String(10), unique=True, nullable=False)
    created_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates('identifier')
    def validate_identifier(self, key, value):
        value = (value or '').strip().upper()
        if not value:
            raise ValueError("Asset type identifier cannot be empty")
        return value

    def __repr__(self):
        return f'<AssetType {self.identifier}>'
