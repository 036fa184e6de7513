from flask import Blueprint, render_template, redirect, url_for, jsonify, current_app
from flask_login import login_required, current_user

from gstinvoice.models import Invoice
from gstinvoice.services.stats import invoice_summary, top_clients
from gstinvoice.logging_config import get_logger

logger = get_logger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/')
def index():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.dashboard'))
    return redirect(url_for('auth.login'))


@dashboard_bp.route('/dashboard')
@login_required
def dashboard():
    """Dashboard with aggregate invoice statistics."""
    summary = invoice_summary(current_user.id)
    clients = top_clients(current_user.id, current_app.config.get('TOP_CLIENTS_LIMIT', 5))

    recent_invoices = (Invoice.for_user(current_user.id)
                       .order_by(Invoice.created_at.desc(), Invoice.id.desc())
                       .limit(5).all())

    return render_template('dashboard.html',
                           summary=summary,
                           top_clients=clients,
                           recent_invoices=recent_invoices)


@dashboard_bp.route('/api/stats/summary')
@login_required
def stats_summary():
    return jsonify(invoice_summary(current_user.id))


@dashboard_bp.route('/api/stats/topclients')
@login_required
def stats_top_clients():
    return jsonify(top_clients(current_user.id, current_app.config.get('TOP_CLIENTS_LIMIT', 5)))
