import re

from flask import current_app, request
from flask_wtf import FlaskForm
from flask_security.forms import RegisterForm
from flask_babel import lazy_gettext as _l
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import BooleanField, DecimalField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import Email, InputRequired, Length, NumberRange, Optional

from aghosh.models import AttendanceStatus, DonationCategory, DonationType
from aghosh.payments.errors import ValidationError

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def json_formdata():
    """Request JSON body as form data: camelCase keys to snake_case, nulls dropped"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')

    data = {}
    for key, value in payload.items():
        if value is None or isinstance(value, (dict, list)):
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        data[_CAMEL_BOUNDARY.sub('_', key).lower()] = str(value)
    return ImmutableMultiDict(data)


class JsonForm(FlaskForm):
    """Form populated from a JSON body; API clients do not carry CSRF tokens"""

    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, **kwargs):
        return cls(formdata=json_formdata(), **kwargs)

    def validate_or_raise(self, message='Invalid donation data'):
        if not self.validate():
            raise ValidationError(message, errors=self.errors)
        return self


class ExtendedRegisterForm(RegisterForm):
    full_name = StringField(_l('Full name'), validators=[Optional(), Length(max=255)])


class DonationForm(JsonForm):
    amount = DecimalField(_l('Amount'), validators=[InputRequired()])
    currency = StringField(_l('Currency'), validators=[InputRequired(), Length(min=3, max=3)])
    category = SelectField(
        _l('Category'),
        choices=[(value, value) for value in DonationCategory.all()],
        default=DonationCategory.GENERAL.value,
    )
    donation_type = SelectField(
        _l('Donation type'),
        choices=[(value, value) for value in DonationType.all()],
        default=DonationType.SADAQAH.value,
    )
    donor_name = StringField(_l('Name'), validators=[Optional(), Length(max=255)])
    donor_email = StringField(_l('Email'), validators=[Optional(), Email(), Length(max=255)])
    is_anonymous = BooleanField(_l('Donate anonymously'))
    message = TextAreaField(_l('Message'), validators=[Optional(), Length(max=1000)])


class ConfirmPaymentForm(JsonForm):
    payment_intent_id = StringField(_l('Payment intent'), validators=[InputRequired(), Length(max=255)])


class SponsorshipIntentForm(JsonForm):
    child_id = IntegerField(_l('Child'), validators=[InputRequired()])
    sponsor_name = StringField(_l('Name'), validators=[InputRequired(), Length(min=2, max=255)])
    sponsor_email = StringField(_l('Email'), validators=[InputRequired(), Email(), Length(max=255)])
    sponsor_phone = StringField(_l('Phone'), validators=[Optional(), Length(max=50)])
    amount = IntegerField(_l('Monthly amount (PKR)'), validators=[Optional(), NumberRange(min=1)])

    def validate_amount(self, field):
        maximum = current_app.config.get('MAXIMUM_DONATION_AMOUNT', 100000)
        if field.data is not None and field.data > maximum:
            from flask_babel import gettext as _
            from wtforms.validators import ValidationError as FieldValidationError
            raise FieldValidationError(_('Monthly amount cannot exceed %(maximum)s PKR', maximum=maximum))


class EventDonationIntentForm(JsonForm):
    event_id = IntegerField(_l('Event'), validators=[InputRequired()])
    amount = DecimalField(_l('Amount (PKR)'), validators=[InputRequired()])
    donor_name = StringField(_l('Name'), validators=[InputRequired(), Length(min=2, max=255)])
    donor_email = StringField(_l('Email'), validators=[InputRequired(), Email(), Length(max=255)])
    donor_phone = StringField(_l('Phone'), validators=[Optional(), Length(max=50)])
    attendance_status = SelectField(
        _l('Attendance'),
        choices=[(value, value) for value in AttendanceStatus.all()],
        default=AttendanceStatus.ATTENDING.value,
    )
