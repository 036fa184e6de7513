"""
Unit tests for WTForms validation.

Tests cover:
- Signup uniqueness and password length
- Invoice form: items, quantities, rates, tax rate range
- Conversion of submitted items into engine line items
"""

import pytest
from decimal import Decimal
from werkzeug.datastructures import MultiDict

from gstinvoice.forms import SignupForm, LoginForm, ProfileForm, InvoiceForm
from gstinvoice.services.tax import LineItem


def invoice_form(app, data):
    with app.test_request_context('/invoices/create', method='POST', data=MultiDict(data)):
        form = InvoiceForm()
        valid = form.validate()
        return form, valid


class TestAuthForms:
    """Test signup and login forms."""

    def test_signup_valid(self, app):
        data = {'email': 'new@example.com', 'password': 'secret123', 'company': 'Rao Textiles'}
        with app.test_request_context(method='POST', data=data):
            assert SignupForm().validate()

    def test_signup_short_password(self, app):
        data = {'email': 'new@example.com', 'password': '12345', 'company': 'Rao Textiles'}
        with app.test_request_context(method='POST', data=data):
            form = SignupForm()
            assert not form.validate()
            assert 'password' in form.errors

    def test_signup_duplicate_email(self, app, seller):
        data = {'email': seller.email.upper(), 'password': 'secret123', 'company': 'Rao Textiles'}
        with app.test_request_context(method='POST', data=data):
            form = SignupForm()
            assert not form.validate()
            assert 'already registered' in form.email.errors[0]

    def test_login_wrong_password(self, app, seller):
        data = {'email': seller.email, 'password': 'not-the-one'}
        with app.test_request_context(method='POST', data=data):
            form = LoginForm()
            assert not form.validate_login()

    def test_login_sets_user(self, app, seller):
        data = {'email': seller.email, 'password': 'secret123'}
        with app.test_request_context(method='POST', data=data):
            form = LoginForm()
            assert form.validate_login()
            assert form.user.id == seller.id


class TestProfileForm:
    def test_required_fields(self, app):
        with app.test_request_context(method='POST', data={}):
            form = ProfileForm()
            assert not form.validate()
            for field in ('company', 'gstin', 'phone', 'mobile', 'address', 'city', 'state', 'pincode'):
                assert field in form.errors

    def test_short_pincode(self, app, seller_profile_data):
        data = dict(seller_profile_data, pincode='411')
        with app.test_request_context(method='POST', data=data):
            form = ProfileForm()
            assert not form.validate()
            assert 'pincode' in form.errors

    def test_logo_url_optional(self, app, seller_profile_data):
        with app.test_request_context(method='POST', data=seller_profile_data):
            assert ProfileForm().validate()


class TestInvoiceForm:
    """Test invoice form validation."""

    def test_valid(self, app, invoice_form_data):
        form, valid = invoice_form(app, invoice_form_data)
        assert valid, form.errors

    def test_line_items(self, app, invoice_form_data):
        form, _ = invoice_form(app, invoice_form_data)
        items = form.line_items()

        assert items == [
            LineItem(description='Steel pipe', quantity=Decimal('10'), rate=Decimal('40'), hsn_code='7306'),
            LineItem(description='Pipe clamp', quantity=Decimal('5'), rate=Decimal('10'), hsn_code=''),
        ]

    def test_zero_rate_allowed(self, app, invoice_form_data):
        invoice_form_data['items-0-rate'] = '0'
        form, valid = invoice_form(app, invoice_form_data)
        assert valid, form.errors

    def test_zero_tax_rate_allowed(self, app, invoice_form_data):
        invoice_form_data['tax_rate'] = '0'
        form, valid = invoice_form(app, invoice_form_data)
        assert valid, form.errors

    @pytest.mark.parametrize('field,value', [
        ('items-0-quantity', '0'),
        ('items-0-quantity', ''),
        ('items-0-quantity', 'Infinity'),
        ('items-0-rate', '-1'),
        ('items-0-rate', 'NaN'),
        ('items-0-description', ''),
        ('tax_rate', '101'),
        ('tax_rate', '-5'),
        ('tax_rate', ''),
        ('client-name', ''),
        ('invoice_type', 'CREDIT'),
        ('tax_type', 'VAT'),
        ('bundle_count', '-1'),
    ])
    def test_invalid_values(self, app, invoice_form_data, field, value):
        invoice_form_data[field] = value
        _, valid = invoice_form(app, invoice_form_data)
        assert not valid

    def test_shipping_fields_optional(self, app, invoice_form_data):
        invoice_form_data['client-shipping_name'] = 'Patil Godown'
        form, valid = invoice_form(app, invoice_form_data)
        assert valid, form.errors
        assert form.client.form.shipping_name.data == 'Patil Godown'
