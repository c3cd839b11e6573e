# labtrack/models/lab.py

from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy import event
from sqlalchemy.orm import validates


class Lab(SerializerMixin, db.Model):
    __tablename__ = 'labs'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(200), nullable=False, default='')
    lab_identifier = db.Column(db.String(20), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assets = db.relationship('Asset', backref='lab', lazy='dynamic')
    issues = db.relationship('LabIssue', backref='lab', lazy='dynamic')

    # Labs of the CSBS department, used by `flask seed-labs`
    PREDEFINED_LABS = [
        ("CL1", "Computer Lab 1", "Programming and networking lab", "Room 101"),
        ("CL2", "Computer Lab 2", "Database and web technologies lab", "Room 102"),
        ("DSL", "Data Science Lab", "GPU workstations for analytics", "Room 201"),
        ("IOT", "IoT Lab", "Embedded boards and sensors", "Room 202"),
        ("PRJ", "Project Lab", "Final year project workspace", "Room 301"),
    ]

    @validates('lab_identifier')
    def validate_lab_identifier(self, key, value):
        value = (value or '').strip()
        if not value:
            raise ValueError("Lab identifier cannot be empty")
        if self.lab_identifier and self.lab_identifier != value:
            raise ValueError("Lab identifier cannot be changed once created")
        return value

    @property
    def asset_count(self):
        return self.assets.count()

    @property
    def staff_count(self):
        return self.staff.count()

    @property
    def open_issues_count(self):
        from labtrack.models.issue import LabIssue
        return self.issues.filter(
            LabIssue.status.in_(LabIssue.ACTIVE_STATUSES)
        ).count()

    def __repr__(self):
        return f'<Lab {self.lab_identifier}>'


@event.listens_for(Lab, 'before_insert')
def validate_unique_identifier(mapper, connection, target):
    """Reject a duplicate lab identifier before hitting the constraint."""
    existing = connection.execute(
        db.select(Lab.id).where(Lab.lab_identifier == target.lab_identifier)
    ).first()
    if existing:
        raise ValueError(
            f"Lab with identifier {target.lab_identifier} already exists"
        )
