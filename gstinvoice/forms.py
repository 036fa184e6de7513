from flask_wtf import FlaskForm
from wtforms import (StringField, TextAreaField, DecimalField, DateField, SelectField, FieldList,
                     FormField, IntegerField, BooleanField, PasswordField)
from wtforms.validators import DataRequired, InputRequired, Email, Optional, NumberRange, Length, ValidationError, StopValidation, URL
from datetime import date

from gstinvoice.services.tax import LineItem


INVOICE_TYPE_CHOICES = [
    ('TAX', 'Tax Invoice'),
    ('PROFORMA', 'Proforma Invoice'),
]

TAX_TYPE_CHOICES = [
    ('CGST_SGST', 'CGST + SGST'),
    ('IGST', 'IGST'),
]


class SignupForm(FlaskForm):
    """Form for creating an account."""
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    company = StringField('Company', validators=[
        DataRequired(message='Company name is required'),
        Length(max=200)
    ])

    def validate_email(self, field):
        """Ensure email is unique."""
        from gstinvoice.models import User
        if User.get_by_email(field.data):
            raise ValidationError(f'Email "{field.data}" is already registered.')


class LoginForm(FlaskForm):
    """Form for user login."""
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Invalid email address')
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters')
    ])
    remember_me = BooleanField('Remember me')

    def validate_login(self):
        """Validate the form and check credentials."""
        from gstinvoice.models import User

        if not self.validate():
            return False

        user = User.get_by_email(self.email.data)
        if not user or not user.is_active or not user.check_password(self.password.data):
            self.password.errors.append('Invalid email or password.')
            return False

        self.user = user
        return True


class ProfileForm(FlaskForm):
    """Seller profile, filled in once after signup and editable in settings."""
    company = StringField('Company', validators=[DataRequired(message='Company name is required'), Length(max=200)])
    gstin = StringField('GSTIN', validators=[DataRequired(message='GSTIN is required'), Length(max=20)])
    phone = StringField('Phone', validators=[DataRequired(message='Phone is required'), Length(min=5, max=20)])
    mobile = StringField('Mobile', validators=[DataRequired(message='Mobile is required'), Length(min=5, max=20)])
    address = TextAreaField('Address', validators=[DataRequired(message='Address is required')])
    city = StringField('City', validators=[DataRequired(message='City is required'), Length(max=100)])
    state = StringField('State', validators=[DataRequired(message='State is required'), Length(max=100)])
    pincode = StringField('Pincode', validators=[DataRequired(message='Pincode is required'), Length(min=4, max=10)])
    logo_url = StringField('Logo URL', validators=[Optional(), URL(message='Invalid URL'), Length(max=500)])


class BankDetailForm(FlaskForm):
    """Bank account printed on invoices."""
    bank_name = StringField('Bank name', validators=[Optional(), Length(max=100)])
    branch = StringField('Branch', validators=[Optional(), Length(max=100)])
    account_no = StringField('Account number', validators=[Optional(), Length(max=50)])
    ifsc_code = StringField('IFSC code', validators=[Optional(), Length(max=20)])


class SetupProfileForm(ProfileForm):
    """Profile and bank details submitted together on first login."""
    bank_name = StringField('Bank name', validators=[Optional(), Length(max=100)])
    branch = StringField('Branch', validators=[Optional(), Length(max=100)])
    account_no = StringField('Account number', validators=[Optional(), Length(max=50)])
    ifsc_code = StringField('IFSC code', validators=[Optional(), Length(max=20)])
    terms = TextAreaField('Terms and conditions', validators=[Optional()])


class SettingsForm(FlaskForm):
    """Invoice terms and conditions."""
    terms = TextAreaField('Terms and conditions', validators=[Optional()])


def finite_number(form, field):
    """Reject NaN and Infinity."""
    if field.data is not None and not field.data.is_finite():
        raise StopValidation('Must be a finite number')


class InvoiceItemForm(FlaskForm):
    """Form for individual invoice items."""

    class Meta:
        csrf = False

    description = StringField('Description', validators=[DataRequired(message='Description is required'), Length(max=500)])
    hsn_code = StringField('HSN code', validators=[Optional(), Length(max=20)])
    quantity = DecimalField('Quantity', places=None, validators=[
        InputRequired(message='Quantity is required'),
        finite_number,
        NumberRange(min=1, message='Quantity must be at least 1')
    ])
    rate = DecimalField('Rate', places=None, validators=[
        InputRequired(message='Rate is required'),
        finite_number,
        NumberRange(min=0, message='Rate cannot be negative')
    ])


class ClientForm(FlaskForm):
    """Billing and shipping party of an invoice."""

    class Meta:
        csrf = False

    name = StringField('Client name', validators=[DataRequired(message='Client name is required'), Length(max=200)])
    gstin = StringField('Client GSTIN', validators=[Optional(), Length(max=20)])
    address = TextAreaField('Address', validators=[Optional()])
    city = StringField('City', validators=[Optional(), Length(max=100)])
    state = StringField('State', validators=[Optional(), Length(max=100)])
    pincode = StringField('Pincode', validators=[Optional(), Length(max=10)])
    shipping_name = StringField('Ship to name', validators=[Optional(), Length(max=200)])
    shipping_address = TextAreaField('Ship to address', validators=[Optional()])
    shipping_city = StringField('Ship to city', validators=[Optional(), Length(max=100)])
    shipping_state = StringField('Ship to state', validators=[Optional(), Length(max=100)])
    shipping_pincode = StringField('Ship to pincode', validators=[Optional(), Length(max=10)])


class InvoiceForm(FlaskForm):
    """Form for creating invoices."""
    invoice_type = SelectField('Invoice type', choices=INVOICE_TYPE_CHOICES, default='TAX')
    tax_type = SelectField('Tax type', choices=TAX_TYPE_CHOICES, default='CGST_SGST')
    invoice_date = DateField('Invoice date', validators=[DataRequired(message='Invoice date is required')],
                             default=date.today)
    po_number = StringField('PO number', validators=[Optional(), Length(max=50)])
    vehicle_number = StringField('Vehicle number', validators=[Optional(), Length(max=30)])
    transporter = StringField('Transporter', validators=[Optional(), Length(max=100)])
    bundle_count = IntegerField('No. of bundles', validators=[
        Optional(),
        NumberRange(min=0, message='Bundle count cannot be negative')
    ])
    tax_rate = DecimalField('Tax rate (%)', places=None, default=18, validators=[
        InputRequired(message='Tax rate is required'),
        finite_number,
        NumberRange(min=0, max=100, message='Tax rate must be between 0 and 100')
    ])
    client = FormField(ClientForm)
    items = FieldList(FormField(InvoiceItemForm), min_entries=1)

    def line_items(self):
        """Submitted items as engine value objects."""
        return [
            LineItem(
                description=entry.form.description.data.strip(),
                quantity=entry.form.quantity.data,
                rate=entry.form.rate.data,
                hsn_code=(entry.form.hsn_code.data or '').strip(),
            )
            for entry in self.items.entries
        ]
