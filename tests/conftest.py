"""
Pytest configuration and fixtures for the GST invoice tests.

This module provides:
- Flask test app built from the testing config (in-memory SQLite, CSRF off)
- Sellers with complete and incomplete profiles
- An authenticated test client
- A factory for stored invoices with computed totals
"""

import pytest
from datetime import date
from decimal import Decimal

from gstinvoice import create_app
from gstinvoice.models import db, User, Invoice, InvoiceItem


SELLER_PASSWORD = 'secret123'


@pytest.fixture(scope='function')
def app():
    """Create Flask application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Database session for testing."""
    yield db.session
    db.session.rollback()


@pytest.fixture
def seller_profile_data():
    """Seller profile from a Pune trading company."""
    return {
        'company': 'Sharma Traders',
        'gstin': '27AAPFS1234K1Z5',
        'phone': '02024567890',
        'mobile': '9822012345',
        'address': '14 Laxmi Road',
        'city': 'Pune',
        'state': 'Maharashtra',
        'pincode': '411030',
    }


@pytest.fixture
def seller(db_session, seller_profile_data):
    """User with a complete seller profile, bank details and terms."""
    user = User.create_user('seller@example.com', SELLER_PASSWORD, 'Sharma Traders')
    for field, value in seller_profile_data.items():
        setattr(user, field, value)
    user.bank_detail.bank_name = 'State Bank of India'
    user.bank_detail.branch = 'Laxmi Road'
    user.bank_detail.account_no = '30012345678'
    user.bank_detail.ifsc_code = 'SBIN0001234'
    user.settings.terms = 'Goods once sold will not be taken back.\nSubject to Pune jurisdiction.'
    db_session.commit()
    return user


@pytest.fixture
def new_user(db_session):
    """Freshly signed-up user who has not filled in the profile yet."""
    return User.create_user('fresh@example.com', SELLER_PASSWORD, 'Fresh Start')


@pytest.fixture
def other_seller(db_session):
    """A second seller whose data must stay invisible to the first."""
    user = User.create_user('other@example.com', SELLER_PASSWORD, 'Gupta Steel')
    user.gstin = '07AAACG9876M1Z2'
    user.address = '5 Lajpat Nagar'
    user.state = 'Delhi'
    db_session.commit()
    return user


def login(client, email, password=SELLER_PASSWORD):
    return client.post('/auth/login', data={'email': email, 'password': password})


@pytest.fixture
def auth_client(client, seller):
    """Test client logged in as the seller."""
    response = login(client, seller.email)
    assert response.status_code == 302
    return client


@pytest.fixture
def make_invoice(db_session):
    """Factory creating stored invoices with computed totals."""
    counter = {'n': 0}

    def _make(user, items=None, invoice_type='TAX', tax_type='CGST_SGST', tax_rate=18,
              client_name='Patil Hardware', invoice_date=None, **fields):
        counter['n'] += 1
        invoice_date = invoice_date or date(2024, 4, 15)
        invoice = Invoice(
            user_id=user.id,
            invoice_number=fields.pop('invoice_number', f'INV-{invoice_date.year}-{counter["n"]:04d}'),
            invoice_type=invoice_type,
            tax_type=tax_type,
            tax_rate=Decimal(str(tax_rate)),
            invoice_date=invoice_date,
            client_name=client_name,
            **fields
        )
        for position, (description, quantity, rate) in enumerate(items or [('Steel pipe', 10, 45)]):
            invoice.items.append(InvoiceItem(
                position=position,
                description=description,
                quantity=Decimal(str(quantity)),
                rate=Decimal(str(rate)),
            ))
        invoice.calculate_totals()
        db_session.add(invoice)
        db_session.commit()
        return invoice

    return _make


@pytest.fixture
def invoice_form_data():
    """Form data for a two-line intra-state tax invoice."""
    return {
        'invoice_type': 'TAX',
        'tax_type': 'CGST_SGST',
        'tax_rate': '18',
        'invoice_date': '2024-04-15',
        'po_number': 'PO-778',
        'vehicle_number': 'MH12AB1234',
        'transporter': 'VRL Logistics',
        'bundle_count': '4',
        'client-name': 'Patil Hardware',
        'client-gstin': '27AAKFP5555L1Z1',
        'client-address': '22 Market Yard',
        'client-city': 'Pune',
        'client-state': 'Maharashtra',
        'client-pincode': '411037',
        'items-0-description': 'Steel pipe',
        'items-0-hsn_code': '7306',
        'items-0-quantity': '10',
        'items-0-rate': '40',
        'items-1-description': 'Pipe clamp',
        'items-1-quantity': '5',
        'items-1-rate': '10',
    }
