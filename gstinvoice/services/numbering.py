import re
from datetime import date
from gstinvoice.models import Invoice


NUMBER_PATTERN = re.compile(r'^INV-(\d{4})-(\d{4})$')


def generate_invoice_number(user_id, year=None):
    """
    Generate next invoice number for a user in format INV-YYYY-####.

    Args:
        user_id: Owner of the invoice sequence
        year: Year for the invoice number. If None, uses current year.

    Returns:
        str: Next invoice number
    """
    if year is None:
        year = date.today().year

    year_prefix = f"INV-{year}-"
    numbers = (Invoice.query
               .with_entities(Invoice.invoice_number)
               .filter(Invoice.user_id == user_id,
                       Invoice.invoice_number.like(f"{year_prefix}%"))
               .all())

    highest = 0
    for (number,) in numbers:
        match = NUMBER_PATTERN.match(number)
        if match:
            highest = max(highest, int(match.group(2)))

    return f"{year_prefix}{highest + 1:04d}"
