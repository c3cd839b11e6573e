from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    PasswordField,
    SelectField,
    BooleanField,
    SubmitField
)
from wtforms.validators import DataRequired, Length, Optional
from labtrack.models import Lab, User


class UserForm(FlaskForm):
    """Form for adding a user profile or editing one.

    The password is required when adding and optional when editing,
    where a blank password keeps the current one.
    """
    name = StringField('Name', validators=[DataRequired(), Length(max=120)])
    email = StringField('Email', validators=[DataRequired(), Length(max=120)])
    role = SelectField('Role', choices=[(role, role) for role in User.ROLES])
    lab_id = SelectField('Lab', validators=[Optional()])
    password = PasswordField('Password', validators=[Optional(), Length(min=6)])
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Save User')

    def __init__(self, *args, require_password=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.lab_id.choices = [('', 'No lab (HOD)')] + [
            (lab.id, f"{lab.lab_identifier} - {lab.name}")
            for lab in Lab.query.order_by(Lab.lab_identifier).all()
        ]
        if require_password:
            self.password.validators = [DataRequired(), Length(min=6)]
