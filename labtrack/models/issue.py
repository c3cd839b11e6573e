# labtrack/models/issue.py

from datetime import datetime
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id
from sqlalchemy.orm import validates

OPEN = 'open'
IN_PROGRESS = 'in_progress'
RESOLVED = 'resolved'
CLOSED = 'closed'
ISSUE_STATUSES = (OPEN, IN_PROGRESS, RESOLVED, CLOSED)

# open -> in_progress -> resolved/closed
ISSUE_TRANSITIONS = {
    OPEN: {IN_PROGRESS, RESOLVED, CLOSED},
    IN_PROGRESS: {RESOLVED, CLOSED},
    RESOLVED: {CLOSED},
    CLOSED: set(),
}


def check_issue_transition(current, new):
    """Validate a status change, returning the new status."""
    if new not in ISSUE_STATUSES:
        raise ValueError(f"Invalid issue status: {new}")
    if current is None or current == new:
        return new
    if new not in ISSUE_TRANSITIONS[current]:
        raise ValueError(f"Issue cannot move from {current} to {new}")
    return new


class IssueStatusMixin:
    ACTIVE_STATUSES = (OPEN, IN_PROGRESS)

    @validates('status')
    def validate_status(self, key, value):
        return check_issue_transition(self.status, value)

    @property
    def is_open(self):
        return self.status in self.ACTIVE_STATUSES


class LabIssue(IssueStatusMixin, SerializerMixin, db.Model):
    """Fault report raised against a whole lab."""
    __tablename__ = 'lab_issues'

    PRIORITIES = ('low', 'medium', 'high', 'urgent')

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lab_id = db.Column(db.String(36), db.ForeignKey('labs.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    issue_type = db.Column(db.String(50), nullable=False, default='general')
    priority = db.Column(db.String(10), nullable=False, default='medium')
    reported_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    assigned_to = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    status = db.Column(db.String(20), nullable=False, default=OPEN, index=True)
    remark = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reporter = db.relationship('User', foreign_keys=[reported_by])
    assignee = db.relationship('User', foreign_keys=[assigned_to])

    @validates('priority')
    def validate_priority(self, key, value):
        if value not in self.PRIORITIES:
            raise ValueError(f"Invalid priority: {value}")
        return value

    def __repr__(self):
        return f'<LabIssue {self.title} ({self.status})>'


class AssetIssue(IssueStatusMixin, SerializerMixin, db.Model):
    """Fault report raised against a single asset."""
    __tablename__ = 'asset_issues'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    asset_id = db.Column(
        db.String(36),
        db.ForeignKey('assets.id', ondelete='CASCADE'),
        index=True
    )
    issue_description = db.Column(db.Text, nullable=False)
    reported_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL'),
        index=True
    )
    reported_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OPEN, index=True)
    resolved_by = db.Column(
        db.String(36),
        db.ForeignKey('user_profiles.id', ondelete='SET NULL')
    )
    resolved_at = db.Column(db.DateTime)
    remark = db.Column(db.Text)
    cost_required = db.Column(db.Numeric(10, 2))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    asset = db.relationship(
        'Asset',
        backref=db.backref('issues', cascade='all, delete-orphan', lazy='dynamic')
    )
    reporter = db.relationship('User', foreign_keys=[reported_by])
    resolver = db.relationship('User', foreign_keys=[resolved_by])

    @property
    def lab_id(self):
        return self.asset.allocated_lab if self.asset else None

    def __repr__(self):
        return f'<AssetIssue {self.id} ({self.status})>'
