from datetime import date
from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    DecimalField,
    TextAreaField,
    SelectField,
    BooleanField,
    DateField,
    SubmitField
)
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange
from labtrack.models import AssetType, Lab


class AssetForm(FlaskForm):
    """
    Form for adding or editing an asset.
    Lab and type choices come from the database.
    """
    date = DateField('Date', default=date.today, validators=[DataRequired()])
    name_of_supply = StringField('Name of Supply', validators=[DataRequired(), Length(max=200)])
    asset_type = SelectField('Asset Type', validators=[DataRequired()])
    invoice_number = StringField('Invoice Number', validators=[Length(max=100)])
    description = TextAreaField('Description')
    rate = DecimalField('Rate', places=2, validators=[
        InputRequired(),
        NumberRange(min=0, message="Rate must be 0 or greater")
    ])
    remark = TextAreaField('Remark')
    is_consumable = BooleanField('Consumable')
    allocated_lab = SelectField('Allocated Lab', validators=[DataRequired()])
    submit = SubmitField('Save Asset')

    def __init__(self, *args, lab_id=None, **kwargs):
        super().__init__(*args, **kwargs)

        self.asset_type.choices = [
            (t.id, f"{t.identifier} - {t.name}")
            for t in AssetType.query.order_by(AssetType.name).all()
        ]

        # Non-HOD staff only ever allocate to their own lab
        labs = Lab.query.order_by(Lab.lab_identifier)
        if lab_id is not None:
            labs = labs.filter(Lab.id == lab_id)
        self.allocated_lab.choices = [
            (lab.id, f"{lab.lab_identifier} - {lab.name}") for lab in labs.all()
        ]


class AssetTypeForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    identifier = StringField('Identifier', validators=[DataRequired(), Length(max=10)])
    submit = SubmitField('Save Asset Type')
