from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    PasswordField,
    BooleanField,
    SubmitField
)
from wtforms.validators import DataRequired, Length


class LoginForm(FlaskForm):
    """Form for user login.

    Fields:
        email: Email address, the login name
        password: Password field
        remember_me: Remember login checkbox
        submit: Submit button
    """
    email = StringField(
        'Email',
        validators=[
            DataRequired(message='Email is required'),
            Length(max=120)
        ]
    )
    password = PasswordField(
        'Password',
        validators=[DataRequired(message='Password is required')]
    )
    remember_me = BooleanField('Remember Me')
    submit = SubmitField('Sign In')
