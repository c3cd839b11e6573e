from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, SubmitField
from wtforms.validators import DataRequired, Length


class LabForm(FlaskForm):
    """
    Form for adding or editing a laboratory.
    The identifier is fixed once the lab exists.
    """
    name = StringField('Lab Name', validators=[DataRequired(), Length(max=100)])
    lab_identifier = StringField('Lab Identifier', validators=[DataRequired(), Length(max=20)])
    description = TextAreaField('Description')
    location = StringField('Location', validators=[Length(max=200)])
    submit = SubmitField('Submit')
