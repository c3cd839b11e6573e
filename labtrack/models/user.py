from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy.orm import validates
from labtrack.extensions import db
from labtrack.models.base import SerializerMixin, new_id


class User(UserMixin, SerializerMixin, db.Model):
    """User profile representing application users.

    Inherits from:
        UserMixin: Provides default implementations for Flask-Login interface
        db.Model: SQLAlchemy model base class
    """
    __tablename__ = 'user_profiles'

    HOD = 'HOD'
    LAB_INCHARGE = 'Lab Incharge'
    LAB_ASSISTANT = 'Lab Assistant'
    ROLES = (HOD, LAB_INCHARGE, LAB_ASSISTANT)

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(
        db.String(20),
        nullable=False,
        default=LAB_ASSISTANT,
        index=True
    )
    lab_id = db.Column(db.String(36), db.ForeignKey('labs.id'), index=True)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow
    )
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
    last_login = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    lab = db.relationship('Lab', backref=db.backref('staff', lazy='dynamic'))

    @validates('role')
    def validate_role(self, key, value):
        if value not in self.ROLES:
            raise ValueError(f"Invalid role: {value}")
        return value

    @validates('email')
    def validate_email(self, key, value):
        if not value or '@' not in value:
            raise ValueError("A valid email address is required")
        return value.strip().lower()

    def set_password(self, password):
        """Set user's password hash from plain text password.

        Args:
            password: Plain text password to hash
        """
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if plain text password matches hash.

        Args:
            password: Plain text password to verify

        Returns:
            bool: True if password matches, False otherwise
        """
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def is_hod(self):
        return self.role == self.HOD

    def is_lab_incharge(self):
        return self.role == self.LAB_INCHARGE

    def is_lab_assistant(self):
        return self.role == self.LAB_ASSISTANT

    def belongs_to_lab(self, lab_id):
        """True when the user is assigned to the given lab."""
        return self.lab_id is not None and self.lab_id == lab_id

    def update_last_login(self):
        """Update user's last login timestamp to current time."""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def __repr__(self):
        return f'<User {self.email}>'
