from flask_wtf import FlaskForm
from wtforms import SelectField, SubmitField
from wtforms.validators import DataRequired
from labtrack.models import Lab


class TransferForm(FlaskForm):
    """
    Form for moving an asset to another laboratory.
    The asset's current lab is excluded from the destinations.
    """
    to_lab = SelectField('Destination Laboratory', validators=[DataRequired()])
    submit = SubmitField('Initiate Transfer')

    def __init__(self, *args, source_lab_id=None, **kwargs):
        super().__init__(*args, **kwargs)

        q = Lab.query.order_by(Lab.lab_identifier)
        if source_lab_id is not None:
            q = q.filter(Lab.id != source_lab_id)
        self.to_lab.choices = [
            (lab.id, f"{lab.lab_identifier} - {lab.name}") for lab in q.all()
        ]
