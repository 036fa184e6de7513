from flask import Blueprint, render_template, request, redirect, url_for, flash, jsonify, abort, current_app
from flask_login import login_required, current_user
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import IntegrityError

from gstinvoice.models import db, Invoice, InvoiceItem
from gstinvoice.forms import InvoiceForm
from gstinvoice.extensions import limiter
from gstinvoice.routes.profile import profile_required
from gstinvoice.services.numbering import generate_invoice_number
from gstinvoice.services.tax import TaxType, compute_totals, item_gst, item_final_amount
from gstinvoice.logging_config import get_logger

logger = get_logger(__name__)

invoices_bp = Blueprint('invoices', __name__)

CLIENT_COLUMNS = {
    'name': 'client_name',
    'gstin': 'client_gstin',
    'address': 'client_address',
    'city': 'client_city',
    'state': 'client_state',
    'pincode': 'client_pincode',
    'shipping_name': 'shipping_name',
    'shipping_address': 'shipping_address',
    'shipping_city': 'shipping_city',
    'shipping_state': 'shipping_state',
    'shipping_pincode': 'shipping_pincode',
}


def get_own_invoice_or_404(invoice_id):
    invoice = Invoice.get_for_user(invoice_id, current_user.id)
    if invoice is None:
        abort(404)
    return invoice


def _clean(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


@invoices_bp.route('/invoices')
@login_required
def invoices():
    """Invoice list, newest first."""
    try:
        page = max(1, int(request.args.get('page', 1)))
    except (ValueError, TypeError):
        page = 1
    per_page = current_app.config.get('INVOICES_PER_PAGE', 20)

    query = Invoice.for_user(current_user.id).order_by(Invoice.invoice_date.desc(), Invoice.id.desc())

    search_query = request.args.get('search', '').strip()
    if search_query:
        query = query.filter(db.or_(
            Invoice.invoice_number.ilike(f'%{search_query}%'),
            Invoice.client_name.ilike(f'%{search_query}%')
        ))

    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return render_template('invoices/list.html',
                           invoices=pagination.items,
                           pagination=pagination,
                           current_search=search_query)


@invoices_bp.route('/invoices/create', methods=['GET', 'POST'])
@login_required
@profile_required
def create_invoice():
    """Create a new invoice with a totals snapshot."""
    form = InvoiceForm()

    if request.method == 'GET':
        form.tax_rate.data = current_app.config.get('DEFAULT_TAX_RATE', 18)

    if form.validate_on_submit():
        line_items = form.line_items()
        totals = compute_totals(line_items, form.tax_type.data, form.tax_rate.data)

        invoice = Invoice(
            user_id=current_user.id,
            invoice_number=generate_invoice_number(current_user.id, form.invoice_date.data.year),
            invoice_type=form.invoice_type.data,
            tax_type=form.tax_type.data,
            invoice_date=form.invoice_date.data,
            po_number=_clean(form.po_number.data),
            vehicle_number=_clean(form.vehicle_number.data),
            transporter=_clean(form.transporter.data),
            bundle_count=form.bundle_count.data or 0,
            tax_rate=form.tax_rate.data,
        )
        for field, column in CLIENT_COLUMNS.items():
            setattr(invoice, column, _clean(getattr(form.client.form, field).data))

        for position, item in enumerate(line_items):
            invoice.items.append(InvoiceItem(
                position=position,
                description=item.description,
                hsn_code=item.hsn_code or None,
                quantity=item.quantity,
                rate=item.rate,
            ))

        invoice.apply_totals(totals)

        try:
            db.session.add(invoice)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.error(f"Integrity error creating invoice for {current_user.email}: {e}")
            flash('An invoice with this number already exists. Please try again.', 'danger')
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating invoice: {e}", exc_info=True)
            flash('Failed to create invoice. Please try again.', 'danger')
        else:
            logger.info(f"Invoice {invoice.invoice_number} created with {len(line_items)} items, "
                        f"total {totals.rounded_total}")
            flash(f'Invoice "{invoice.invoice_number}" created successfully.', 'success')
            return redirect(url_for('invoices.view_invoice', invoice_id=invoice.id))
    elif request.method == 'POST':
        logger.debug(f"Invoice form validation failed: {form.errors}")

    return render_template('invoices/form.html', form=form)


@invoices_bp.route('/invoices/<int:invoice_id>')
@login_required
def view_invoice(invoice_id):
    """Invoice details."""
    invoice = get_own_invoice_or_404(invoice_id)
    return render_template('invoices/detail.html', invoice=invoice)


@invoices_bp.route('/invoices/<int:invoice_id>/delete', methods=['POST'])
@login_required
def delete_invoice(invoice_id):
    """Delete an invoice and its items."""
    invoice = get_own_invoice_or_404(invoice_id)
    number = invoice.invoice_number

    try:
        db.session.delete(invoice)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting invoice {invoice_id}: {e}", exc_info=True)
        if request.is_json:
            return jsonify({'success': False, 'message': 'Failed to delete invoice.'}), 500
        flash('Failed to delete invoice.', 'danger')
        return redirect(url_for('invoices.view_invoice', invoice_id=invoice_id))

    logger.info(f"Invoice {number} deleted by {current_user.email}")
    if request.is_json:
        return jsonify({'success': True, 'message': f'Invoice "{number}" deleted.'})
    flash(f'Invoice "{number}" deleted.', 'success')
    return redirect(url_for('invoices.invoices'))


def _parse_decimal(value):
    if value is None or value == '':
        return Decimal('0')
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Not a number: {value!r}')
    if not number.is_finite():
        raise ValueError(f'Not a number: {value!r}')
    return number


@invoices_bp.route('/api/invoices/calculate', methods=['POST'])
@limiter.exempt
@login_required
def calculate_totals():
    """Live totals preview for the invoice form."""
    payload = request.get_json(silent=True) or {}

    try:
        tax_type = TaxType.coerce(payload.get('taxType', TaxType.SPLIT.value))
        tax_rate = _parse_decimal(payload.get('taxRate', current_app.config.get('DEFAULT_TAX_RATE', 18)))
        if not 0 <= tax_rate <= 100:
            raise ValueError('Tax rate must be between 0 and 100.')
        raw_items = payload.get('items') or []
        if not isinstance(raw_items, list):
            raise ValueError('Items must be a list.')
        items = [
            {'quantity': _parse_decimal(item.get('quantity')), 'rate': _parse_decimal(item.get('rate'))}
            for item in raw_items
        ]
    except (ValueError, AttributeError) as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    totals = compute_totals(items, tax_type, tax_rate)

    return jsonify({
        'success': True,
        'subtotal': f"{totals.subtotal:.2f}",
        'cgst': f"{totals.cgst:.2f}",
        'sgst': f"{totals.sgst:.2f}",
        'igst': f"{totals.igst:.2f}",
        'total': f"{totals.total:.2f}",
        'roundedTotal': int(totals.rounded_total),
        'items': [
            {
                'gst': f"{item_gst(item, tax_rate):.2f}",
                'finalAmount': f"{item_final_amount(item, tax_rate):.2f}",
            }
            for item in items
        ],
    })
