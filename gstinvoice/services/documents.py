"""
Printable invoice document assembly.

Seller, client and bank records arrive partially filled in. Each is merged
over a set of placeholder defaults into a complete value object before the
PDF template sees it, so the template never has to guard against missing
fields.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from decimal import Decimal

from num2words import num2words

from gstinvoice.services.tax import (
    LineItem,
    TaxType,
    compute_line_amount,
    item_final_amount,
    item_gst,
)


SELLER_DEFAULTS = {
    'company': 'Your Company Name',
    'address': 'Company Address Line 1',
    'city': 'City',
    'state': 'State',
    'pincode': '123456',
    'gstin': 'GSTIN123456789',
    'phone': '1234567890',
    'mobile': '9876543210',
    'logo_url': '',
    'terms': ('1. Payment terms: 30 days\n'
              '2. Interest @24% p.a. will be charged on delayed payments\n'
              '3. Subject to jurisdiction'),
}

BANK_DEFAULTS = {
    'bank_name': 'Bank Name',
    'branch': 'Branch Name',
    'account_no': '1234567890',
    'ifsc_code': 'IFSC0001234',
}

CLIENT_DEFAULTS = {
    'name': 'Client Name',
    'address': 'Client Address',
    'city': 'City',
    'state': 'State',
    'pincode': '123456',
    'gstin': '',
    'shipping_name': '',
    'shipping_address': '',
    'shipping_city': '',
    'shipping_state': '',
    'shipping_pincode': '',
}

INVOICE_TITLES = {
    'TAX': 'TAX INVOICE',
    'PROFORMA': 'PROFORMA INVOICE',
}


def apply_defaults(record, defaults):
    """
    Merge a partial record over defaults.

    Keys missing from ``record`` or holding ``None`` or a blank string take
    the default value. Keys not present in ``defaults`` are ignored.
    """
    record = record or {}
    merged = {}
    for key, default in defaults.items():
        value = record.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            value = default
        merged[key] = value
    return merged


@dataclass(frozen=True)
class BankDetails:
    bank_name: str
    branch: str
    account_no: str
    ifsc_code: str


@dataclass(frozen=True)
class SellerDetails:
    company: str
    address: str
    city: str
    state: str
    pincode: str
    gstin: str
    phone: str
    mobile: str
    logo_url: str
    terms: str
    bank: BankDetails


@dataclass(frozen=True)
class PartyDetails:
    name: str
    address: str
    city: str
    state: str
    pincode: str
    gstin: str


@dataclass(frozen=True)
class DocumentRow:
    serial: int
    description: str
    hsn_code: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    gst: Decimal
    final_amount: Decimal


@dataclass(frozen=True)
class InvoiceDocument:
    title: str
    is_tax_invoice: bool
    invoice_number: str
    invoice_date: object
    po_number: str
    vehicle_number: str
    transporter: str
    bundle_count: int
    seller: SellerDetails
    bill_to: PartyDetails
    ship_to: Optional[PartyDetails]
    rows: tuple
    tax_type: TaxType
    tax_rate: Decimal
    tax_lines: Tuple[Tuple[str, Decimal], ...]
    subtotal: Decimal
    total: Decimal
    rounded_total: int
    amount_in_words: str


def build_seller(user):
    """Seller details for a user, falling back to placeholders."""
    record = {}
    bank_record = {}
    if user is not None:
        record = {key: getattr(user, key, None) for key in SELLER_DEFAULTS}
        if getattr(user, 'settings', None) is not None:
            record['terms'] = user.settings.terms
        if getattr(user, 'bank_detail', None) is not None:
            bank_record = {key: getattr(user.bank_detail, key, None) for key in BANK_DEFAULTS}

    seller = apply_defaults(record, SELLER_DEFAULTS)
    bank = BankDetails(**apply_defaults(bank_record, BANK_DEFAULTS))
    return SellerDetails(bank=bank, **seller)


def build_parties(client_record, is_tax_invoice):
    """
    Bill-to and ship-to blocks.

    Ship-to only appears on tax invoices that name a shipping party or
    address; its missing fields repeat the billing ones.
    """
    client = apply_defaults(client_record, CLIENT_DEFAULTS)
    bill_to = PartyDetails(
        name=client['name'],
        address=client['address'],
        city=client['city'],
        state=client['state'],
        pincode=client['pincode'],
        gstin=client['gstin'] or '-',
    )

    ship_to = None
    if is_tax_invoice and (client['shipping_name'] or client['shipping_address']):
        ship_to = PartyDetails(
            name=client['shipping_name'] or bill_to.name,
            address=client['shipping_address'] or bill_to.address,
            city=client['shipping_city'] or bill_to.city,
            state=client['shipping_state'] or bill_to.state,
            pincode=client['shipping_pincode'] or bill_to.pincode,
            gstin=bill_to.gstin,
        )
    return bill_to, ship_to


def build_rows(items, tax_rate):
    rows = []
    for serial, item in enumerate(items, start=1):
        rows.append(DocumentRow(
            serial=serial,
            description=item.description,
            hsn_code=item.hsn_code or '',
            quantity=item.quantity,
            rate=item.rate,
            amount=compute_line_amount(item),
            gst=item_gst(item, tax_rate),
            final_amount=item_final_amount(item, tax_rate),
        ))
    return tuple(rows)


def tax_lines(tax_type, tax_rate, cgst, sgst, igst):
    """Labelled tax amounts for the totals block."""
    tax_type = TaxType.coerce(tax_type)
    rate = Decimal(str(tax_rate))
    if tax_type is TaxType.SPLIT:
        half = f"{rate / 2:.1f}"
        return (
            (f"CGST @ {half}%", cgst),
            (f"SGST @ {half}%", sgst),
        )
    return ((f"IGST @ {rate:.1f}%", igst),)


def amount_in_words(amount):
    """Rounded invoice amount spelled out in Indian English."""
    words = num2words(int(amount), lang='en_IN')
    return f"{words[:1].upper()}{words[1:]} rupees only"


def _client_record(invoice):
    return {
        'name': invoice.client_name,
        'gstin': invoice.client_gstin,
        'address': invoice.client_address,
        'city': invoice.client_city,
        'state': invoice.client_state,
        'pincode': invoice.client_pincode,
        'shipping_name': invoice.shipping_name,
        'shipping_address': invoice.shipping_address,
        'shipping_city': invoice.shipping_city,
        'shipping_state': invoice.shipping_state,
        'shipping_pincode': invoice.shipping_pincode,
    }


def build_invoice_document(invoice):
    """
    Assemble the complete printable document for a stored invoice.

    Totals come from the invoice's stored snapshot; only the per-line GST
    column is derived here.

    Args:
        invoice: Invoice model instance with items loaded

    Returns:
        InvoiceDocument: Fully populated document
    """
    if invoice.invoice_type not in INVOICE_TITLES:
        raise ValueError(f'Unknown invoice type: {invoice.invoice_type!r}')

    is_tax_invoice = invoice.invoice_type == 'TAX'
    tax_rate = Decimal(str(invoice.tax_rate))
    bill_to, ship_to = build_parties(_client_record(invoice), is_tax_invoice)
    items = [
        LineItem(description=item.description, quantity=item.quantity,
                 rate=item.rate, hsn_code=item.hsn_code or '')
        for item in invoice.items
    ]

    return InvoiceDocument(
        title=INVOICE_TITLES[invoice.invoice_type],
        is_tax_invoice=is_tax_invoice,
        invoice_number=invoice.invoice_number,
        invoice_date=invoice.invoice_date,
        po_number=invoice.po_number or '-',
        vehicle_number=invoice.vehicle_number or '-',
        transporter=invoice.transporter or '-',
        bundle_count=invoice.bundle_count or 0,
        seller=build_seller(invoice.user),
        bill_to=bill_to,
        ship_to=ship_to,
        rows=build_rows(items, tax_rate),
        tax_type=TaxType.coerce(invoice.tax_type),
        tax_rate=tax_rate,
        tax_lines=tax_lines(invoice.tax_type, tax_rate,
                            invoice.cgst, invoice.sgst, invoice.igst),
        subtotal=invoice.subtotal,
        total=invoice.total,
        rounded_total=invoice.rounded_total,
        amount_in_words=amount_in_words(invoice.rounded_total),
    )
