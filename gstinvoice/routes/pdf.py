from flask import Blueprint, render_template, send_file, abort
from flask_login import login_required, current_user
from io import BytesIO
from weasyprint import HTML

from gstinvoice.models import Invoice
from gstinvoice.services.documents import build_invoice_document
from gstinvoice.logging_config import get_logger

logger = get_logger(__name__)

pdf_bp = Blueprint('pdf', __name__)


def _load_document(invoice_id):
    invoice = Invoice.get_for_user(invoice_id, current_user.id)
    if invoice is None:
        abort(404)
    return invoice, build_invoice_document(invoice)


def _render_invoice_html(document):
    return render_template('pdf/invoice.html', doc=document)


@pdf_bp.route('/invoices/<int:invoice_id>/pdf')
@login_required
def invoice_pdf(invoice_id):
    """Render the invoice as a PDF download."""
    invoice, document = _load_document(invoice_id)

    try:
        html = _render_invoice_html(document)
        pdf_bytes = HTML(string=html).write_pdf()
    except Exception as e:
        logger.error(f"PDF generation error for invoice {invoice_id}: {e}", exc_info=True)
        abort(500)

    filename = "".join(c for c in invoice.invoice_number if c.isalnum() or c in ('-', '_'))
    return send_file(
        BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{filename}.pdf"
    )


@pdf_bp.route('/invoices/<int:invoice_id>/preview')
@login_required
def invoice_preview(invoice_id):
    """HTML preview of the printed invoice."""
    invoice, document = _load_document(invoice_id)
    return _render_invoice_html(document)
