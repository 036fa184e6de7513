from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import func

from gstinvoice.models import db, Invoice


def _money(value):
    return Decimal(str(value or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def invoice_summary(user_id):
    """
    Aggregate figures for the dashboard.

    Revenue is the sum of rounded invoice totals, the amount actually billed.

    Returns:
        dict: totalInvoices, totalRevenue, averageInvoiceValue,
              invoicesByType and invoicesByTaxType
    """
    total_invoices, total_revenue = db.session.query(
        func.count(Invoice.id),
        func.coalesce(func.sum(Invoice.rounded_total), 0)
    ).filter(Invoice.user_id == user_id).one()

    if total_invoices:
        average = _money(Decimal(total_revenue) / Decimal(total_invoices))
    else:
        average = Decimal('0.00')

    by_type = db.session.query(
        Invoice.invoice_type, func.count(Invoice.id)
    ).filter(Invoice.user_id == user_id).group_by(
        Invoice.invoice_type
    ).order_by(Invoice.invoice_type).all()

    by_tax_type = db.session.query(
        Invoice.tax_type, func.count(Invoice.id)
    ).filter(Invoice.user_id == user_id).group_by(
        Invoice.tax_type
    ).order_by(Invoice.tax_type).all()

    return {
        'totalInvoices': total_invoices,
        'totalRevenue': float(total_revenue),
        'averageInvoiceValue': float(average),
        'invoicesByType': [{'type': t, 'count': c} for t, c in by_type],
        'invoicesByTaxType': [{'taxType': t, 'count': c} for t, c in by_tax_type],
    }


def top_clients(user_id, limit=5):
    """
    Clients ranked by billed amount.

    Clients are grouped by the name captured on each invoice.
    """
    total_amount = func.sum(Invoice.rounded_total).label('total_amount')
    rows = db.session.query(
        Invoice.client_name,
        func.count(Invoice.id).label('invoice_count'),
        total_amount
    ).filter(Invoice.user_id == user_id).group_by(
        Invoice.client_name
    ).order_by(total_amount.desc(), Invoice.client_name.asc()).limit(limit).all()

    return [
        {
            'name': row.client_name,
            'invoiceCount': row.invoice_count,
            'totalAmount': float(row.total_amount or 0),
        }
        for row in rows
    ]
