"""
Unit tests for printable invoice assembly.

Tests cover:
- Placeholder defaults for seller, bank and client records
- Bill-to and ship-to blocks
- Tax line labels
- Amount in words
- Full document built from a stored invoice
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace

from gstinvoice.services.documents import (
    SELLER_DEFAULTS,
    BANK_DEFAULTS,
    apply_defaults,
    build_seller,
    build_parties,
    build_rows,
    tax_lines,
    amount_in_words,
    build_invoice_document,
)
from gstinvoice.services.tax import LineItem, TaxType


class TestApplyDefaults:
    """Test merging partial records over defaults."""

    def test_missing_none_and_blank_take_defaults(self):
        defaults = {'name': 'Client Name', 'city': 'City', 'state': 'State'}
        merged = apply_defaults({'name': None, 'city': '   '}, defaults)
        assert merged == defaults

    def test_present_values_win(self):
        merged = apply_defaults({'name': 'Patil Hardware'}, {'name': 'Client Name'})
        assert merged['name'] == 'Patil Hardware'

    def test_unknown_keys_dropped(self):
        merged = apply_defaults({'name': 'A', 'extra': 'x'}, {'name': 'Client Name'})
        assert merged == {'name': 'A'}

    def test_none_record(self):
        assert apply_defaults(None, {'a': 1}) == {'a': 1}


class TestBuildSeller:
    """Test seller block assembly."""

    def test_no_user_gives_placeholders(self):
        seller = build_seller(None)
        assert seller.company == SELLER_DEFAULTS['company']
        assert seller.terms == SELLER_DEFAULTS['terms']
        assert seller.bank.ifsc_code == BANK_DEFAULTS['ifsc_code']

    def test_partial_profile(self):
        user = SimpleNamespace(company='Sharma Traders', gstin=None, phone='', mobile=None,
                               address='14 Laxmi Road', city='Pune', state='Maharashtra',
                               pincode=None, logo_url=None,
                               settings=SimpleNamespace(terms=None),
                               bank_detail=SimpleNamespace(bank_name='SBI', branch=None,
                                                           account_no=None, ifsc_code=None))
        seller = build_seller(user)

        assert seller.company == 'Sharma Traders'
        assert seller.gstin == SELLER_DEFAULTS['gstin']
        assert seller.phone == SELLER_DEFAULTS['phone']
        assert seller.terms == SELLER_DEFAULTS['terms']
        assert seller.bank.bank_name == 'SBI'
        assert seller.bank.branch == BANK_DEFAULTS['branch']

    def test_complete_profile(self, seller):
        details = build_seller(seller)
        assert details.company == 'Sharma Traders'
        assert details.gstin == '27AAPFS1234K1Z5'
        assert details.bank.account_no == '30012345678'
        assert details.terms.startswith('Goods once sold')


class TestBuildParties:
    """Test bill-to and ship-to blocks."""

    @pytest.fixture
    def client_record(self):
        return {
            'name': 'Patil Hardware',
            'gstin': '',
            'address': '22 Market Yard',
            'city': 'Pune',
            'state': 'Maharashtra',
            'pincode': '411037',
        }

    def test_missing_gstin_printed_as_dash(self, client_record):
        bill_to, _ = build_parties(client_record, True)
        assert bill_to.gstin == '-'

    def test_no_shipping_details_means_no_ship_to(self, client_record):
        _, ship_to = build_parties(client_record, True)
        assert ship_to is None

    def test_ship_to_falls_back_to_billing_fields(self, client_record):
        client_record['shipping_name'] = 'Patil Godown'
        bill_to, ship_to = build_parties(client_record, True)

        assert ship_to.name == 'Patil Godown'
        assert ship_to.address == bill_to.address
        assert ship_to.pincode == '411037'

    def test_ship_to_with_address_only(self, client_record):
        client_record['shipping_address'] = 'Plot 7, MIDC Bhosari'
        _, ship_to = build_parties(client_record, True)

        assert ship_to.name == 'Patil Hardware'
        assert ship_to.address == 'Plot 7, MIDC Bhosari'

    def test_proforma_never_has_ship_to(self, client_record):
        client_record['shipping_name'] = 'Patil Godown'
        _, ship_to = build_parties(client_record, False)
        assert ship_to is None

    def test_empty_client_uses_placeholders(self):
        bill_to, ship_to = build_parties({}, True)
        assert bill_to.name == 'Client Name'
        assert ship_to is None


class TestTaxLines:
    """Test tax labels on the totals block."""

    def test_split_labels(self):
        lines = tax_lines(TaxType.SPLIT, 18, Decimal('40.5'), Decimal('40.5'), 0)
        assert lines == (('CGST @ 9.0%', Decimal('40.5')), ('SGST @ 9.0%', Decimal('40.5')))

    def test_single_label(self):
        lines = tax_lines('IGST', Decimal('18.00'), 0, 0, Decimal('81'))
        assert lines == (('IGST @ 18.0%', Decimal('81')),)

    def test_fractional_half_rate(self):
        (cgst_label, _), (sgst_label, _) = tax_lines('CGST_SGST', 5, 1, 1, 0)
        assert cgst_label == 'CGST @ 2.5%'
        assert sgst_label == 'SGST @ 2.5%'


class TestAmountInWords:
    """Test the amount-in-words line."""

    def test_small_amount(self):
        words = amount_in_words(531)
        assert words.startswith('Five hundred')
        assert words.endswith(' rupees only')

    def test_indian_numbering(self):
        assert 'lakh' in amount_in_words(150000)

    def test_zero(self):
        assert amount_in_words(0) == 'Zero rupees only'


class TestBuildRows:
    def test_rows_numbered_from_one(self):
        items = [
            LineItem(description='Steel pipe', quantity=2, rate=100, hsn_code='7306'),
            LineItem(description='Clamp', quantity=1, rate=250),
        ]
        rows = build_rows(items, Decimal('18'))

        assert [row.serial for row in rows] == [1, 2]
        assert rows[0].amount == Decimal('200')
        assert rows[0].gst == Decimal('36')
        assert rows[0].final_amount == Decimal('236')
        assert rows[1].hsn_code == ''


class TestBuildInvoiceDocument:
    """Test the full printable document for a stored invoice."""

    def test_tax_invoice(self, seller, make_invoice):
        invoice = make_invoice(seller, items=[('Steel pipe', 2, 100), ('Clamp', 1, 250)],
                               shipping_name='Patil Godown', po_number='PO-1')
        doc = build_invoice_document(invoice)

        assert doc.title == 'TAX INVOICE'
        assert doc.is_tax_invoice
        assert doc.po_number == 'PO-1'
        assert doc.vehicle_number == '-'
        assert doc.ship_to.name == 'Patil Godown'
        assert doc.subtotal == Decimal('450')
        assert doc.rounded_total == 531
        assert [label for label, _ in doc.tax_lines] == ['CGST @ 9.0%', 'SGST @ 9.0%']
        assert doc.rows[0].gst == Decimal('36')
        assert doc.amount_in_words.endswith('rupees only')
        assert doc.seller.bank.bank_name == 'State Bank of India'

    def test_proforma_invoice(self, seller, make_invoice):
        invoice = make_invoice(seller, invoice_type='PROFORMA', tax_type='IGST',
                               shipping_name='Patil Godown')
        doc = build_invoice_document(invoice)

        assert doc.title == 'PROFORMA INVOICE'
        assert not doc.is_tax_invoice
        assert doc.ship_to is None
        assert doc.tax_type is TaxType.SINGLE
        assert [label for label, _ in doc.tax_lines] == ['IGST @ 18.0%']

    def test_uses_stored_totals(self, seller, make_invoice, db_session):
        """Totals come from the snapshot, not from a fresh calculation."""
        invoice = make_invoice(seller)
        invoice.total = Decimal('999')
        invoice.rounded_total = 999
        db_session.commit()

        doc = build_invoice_document(invoice)
        assert doc.total == Decimal('999')
        assert doc.rounded_total == 999

    def test_unknown_invoice_type(self):
        invoice = SimpleNamespace(invoice_type='CREDIT_NOTE')
        with pytest.raises(ValueError, match='Unknown invoice type'):
            build_invoice_document(invoice)
