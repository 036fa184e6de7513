from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum


ZERO = Decimal('0')
HUNDRED = Decimal('100')
TWO_HUNDRED = Decimal('200')


class TaxType(str, Enum):
    """GST tax mode selector."""
    SPLIT = 'CGST_SGST'   # intra-state: CGST + SGST, half the rate each
    SINGLE = 'IGST'       # inter-state: IGST at the full rate

    @classmethod
    def coerce(cls, value):
        """Accept a TaxType or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f'Unknown tax type: {value!r}')


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


@dataclass(frozen=True)
class LineItem:
    """A single invoice line."""
    description: str
    quantity: Decimal
    rate: Decimal
    hsn_code: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'quantity', _to_decimal(self.quantity))
        object.__setattr__(self, 'rate', _to_decimal(self.rate))

    @property
    def amount(self):
        return compute_line_amount(self)


@dataclass(frozen=True)
class InvoiceTotals:
    """Totals snapshot for one invoice."""
    subtotal: Decimal
    tax_component_a: Decimal
    tax_component_b: Decimal
    total: Decimal
    rounded_total: Decimal
    tax_type: TaxType

    @property
    def cgst(self):
        return self.tax_component_a if self.tax_type is TaxType.SPLIT else ZERO

    @property
    def sgst(self):
        return self.tax_component_b if self.tax_type is TaxType.SPLIT else ZERO

    @property
    def igst(self):
        return self.tax_component_a if self.tax_type is TaxType.SINGLE else ZERO

    def as_dict(self):
        """Fields stored alongside the invoice record."""
        return {
            'subtotal': self.subtotal,
            'cgst': self.cgst,
            'sgst': self.sgst,
            'igst': self.igst,
            'total': self.total,
            'rounded_total': self.rounded_total,
        }


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def round_half_away_from_zero(value):
    """
    Round to the nearest whole currency unit, ties away from zero.

    Args:
        value: Amount (Decimal, float, int or numeric string)

    Returns:
        Decimal: Integral value. NaN and Infinity are returned unchanged.
    """
    return _to_decimal(value).to_integral_value(rounding=ROUND_HALF_UP)


def compute_line_amount(item):
    """
    Calculate the amount for an invoice line (quantity * rate).

    Args:
        item: LineItem, mapping or object exposing ``quantity`` and ``rate``

    Returns:
        Decimal: Unrounded line amount
    """
    return _to_decimal(_field(item, 'quantity')) * _to_decimal(_field(item, 'rate'))


def compute_totals(items, tax_type, tax_rate_percent):
    """
    Calculate subtotal, GST components and totals for a set of lines.

    Under SPLIT both components are ``subtotal * rate / 200``; under SINGLE
    the first component is ``subtotal * rate / 100`` and the second is zero.
    Nothing is quantized before the final rounding.

    Args:
        items: Iterable of line items
        tax_type: TaxType or its string value
        tax_rate_percent: Nominal GST rate in percent

    Returns:
        InvoiceTotals: Computed totals
    """
    tax_type = TaxType.coerce(tax_type)
    rate = _to_decimal(tax_rate_percent)

    subtotal = ZERO
    for item in items:
        subtotal += compute_line_amount(item)

    if tax_type is TaxType.SPLIT:
        component_a = subtotal * rate / TWO_HUNDRED
        component_b = subtotal * rate / TWO_HUNDRED
    else:
        component_a = subtotal * rate / HUNDRED
        component_b = ZERO

    total = subtotal + component_a + component_b

    return InvoiceTotals(
        subtotal=subtotal,
        tax_component_a=component_a,
        tax_component_b=component_b,
        total=total,
        rounded_total=round_half_away_from_zero(total),
        tax_type=tax_type,
    )


def item_gst(item, tax_rate_percent):
    """
    GST shown against a single line on the printed invoice.

    Always applies the full nominal rate, regardless of the tax mode.
    """
    return compute_line_amount(item) * _to_decimal(tax_rate_percent) / HUNDRED


def item_final_amount(item, tax_rate_percent):
    """Line amount plus its per-line GST."""
    return compute_line_amount(item) + item_gst(item, tax_rate_percent)
