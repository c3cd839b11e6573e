from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    DecimalField,
    TextAreaField,
    SelectField,
    SubmitField
)
from wtforms.validators import DataRequired, Length, NumberRange, Optional
from labtrack.models import Lab, LabIssue, User
from labtrack.models.issue import ISSUE_STATUSES


def _status_choices():
    return [(status, status.replace('_', ' ').title()) for status in ISSUE_STATUSES]


class LabIssueForm(FlaskForm):
    lab_id = SelectField('Lab', validators=[DataRequired()])
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[DataRequired()])
    issue_type = StringField('Issue Type', default='general', validators=[Length(max=50)])
    priority = SelectField(
        'Priority',
        choices=[(p, p.title()) for p in LabIssue.PRIORITIES],
        default='medium'
    )
    assigned_to = SelectField('Assigned To', validators=[Optional()])
    status = SelectField('Status', default='open')
    remark = TextAreaField('Remark')
    submit = SubmitField('Save Issue')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lab_id.choices = [
            (lab.id, f"{lab.lab_identifier} - {lab.name}")
            for lab in Lab.query.order_by(Lab.lab_identifier).all()
        ]
        self.assigned_to.choices = [('', 'Unassigned')] + [
            (user.id, user.name)
            for user in User.query.filter_by(is_active=True).order_by(User.name).all()
        ]
        self.status.choices = _status_choices()


class AssetIssueForm(FlaskForm):
    """
    Form for reporting a fault on an asset.
    """
    issue_description = TextAreaField('Issue Description', validators=[DataRequired()])
    cost_required = DecimalField('Cost Required', places=2, validators=[
        Optional(),
        NumberRange(min=0, message="Cost must be 0 or greater")
    ])
    remark = TextAreaField('Remark')
    submit = SubmitField('Report Issue')


class IssueStatusForm(FlaskForm):
    status = SelectField('Status', validators=[DataRequired()])
    remark = TextAreaField('Remark')
    cost_required = DecimalField('Cost Required', places=2, validators=[
        Optional(),
        NumberRange(min=0, message="Cost must be 0 or greater")
    ])
    submit = SubmitField('Update')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.status.choices = _status_choices()
