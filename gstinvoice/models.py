from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, date
from decimal import Decimal

from gstinvoice.services.tax import LineItem, TaxType, compute_totals

db = SQLAlchemy()


INVOICE_TYPES = ('TAX', 'PROFORMA')
TAX_TYPES = tuple(t.value for t in TaxType)


class User(UserMixin, db.Model):
    """Account holder and seller profile printed on invoices."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120), nullable=True)
    company = db.Column(db.String(200), nullable=False)
    gstin = db.Column(db.String(20), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    mobile = db.Column(db.String(20), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    pincode = db.Column(db.String(10), nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    is_active_account = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bank_detail = db.relationship('BankDetail', backref='user', uselist=False, cascade='all, delete-orphan')
    settings = db.relationship('UserSettings', backref='user', uselist=False, cascade='all, delete-orphan')
    invoices = db.relationship('Invoice', backref='user', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<User #{self.id}: {self.email} ({self.company})>'

    @property
    def is_active(self):
        return self.is_active_account

    @property
    def is_profile_complete(self):
        """Invoices can only be created once the seller profile is filled in."""
        return all([self.company, self.gstin, self.address, self.state])

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @classmethod
    def get_by_email(cls, email):
        """Get user by email, case-insensitive."""
        if not email:
            return None
        return cls.query.filter(db.func.lower(cls.email) == email.strip().lower()).first()

    @classmethod
    def create_user(cls, email, password, company):
        """Create a new user with empty bank details and settings."""
        if cls.get_by_email(email):
            raise ValueError(f'Email "{email}" is already registered.')

        user = cls(email=email.strip().lower(), company=company.strip())
        user.set_password(password)
        user.bank_detail = BankDetail()
        user.settings = UserSettings()
        db.session.add(user)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return user


class BankDetail(db.Model):
    """Bank account printed in the payment block of invoices."""
    __tablename__ = 'bank_details'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    bank_name = db.Column(db.String(100), nullable=True)
    branch = db.Column(db.String(100), nullable=True)
    account_no = db.Column(db.String(50), nullable=True)
    ifsc_code = db.Column(db.String(20), nullable=True)

    def __repr__(self):
        return f'<BankDetail {self.bank_name or "-"} {self.account_no or "-"}>'


class UserSettings(db.Model):
    """Per-user invoice settings."""
    __tablename__ = 'user_settings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    terms = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<UserSettings user={self.user_id}>'


class Invoice(db.Model):
    """
    Invoice with a snapshot of its client and totals.

    Totals are computed once at creation and stored; reading an invoice
    never recalculates them.
    """
    __tablename__ = 'invoices'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    invoice_number = db.Column(db.String(30), nullable=False)
    invoice_type = db.Column(db.String(10), nullable=False, default='TAX')
    tax_type = db.Column(db.String(10), nullable=False, default=TaxType.SPLIT.value)
    invoice_date = db.Column(db.Date, nullable=False, default=date.today)
    po_number = db.Column(db.String(50), nullable=True)
    vehicle_number = db.Column(db.String(30), nullable=True)
    transporter = db.Column(db.String(100), nullable=True)
    bundle_count = db.Column(db.Integer, nullable=True, default=0)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=18)

    # Client snapshot
    client_name = db.Column(db.String(200), nullable=False)
    client_gstin = db.Column(db.String(20), nullable=True)
    client_address = db.Column(db.Text, nullable=True)
    client_city = db.Column(db.String(100), nullable=True)
    client_state = db.Column(db.String(100), nullable=True)
    client_pincode = db.Column(db.String(10), nullable=True)
    shipping_name = db.Column(db.String(200), nullable=True)
    shipping_address = db.Column(db.Text, nullable=True)
    shipping_city = db.Column(db.String(100), nullable=True)
    shipping_state = db.Column(db.String(100), nullable=True)
    shipping_pincode = db.Column(db.String(10), nullable=True)

    # Totals snapshot
    subtotal = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    cgst = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    sgst = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    igst = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    total = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    rounded_total = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('InvoiceItem', backref='invoice', lazy=True,
                            cascade='all, delete-orphan', order_by='InvoiceItem.position')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'invoice_number', name='unique_user_invoice_number'),
        db.CheckConstraint('subtotal >= 0', name='check_subtotal_positive'),
        db.CheckConstraint('total >= 0', name='check_total_positive'),
        db.CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='check_tax_rate_valid'),
        db.CheckConstraint("invoice_type IN ('TAX', 'PROFORMA')", name='check_invoice_type_valid'),
        db.CheckConstraint("tax_type IN ('CGST_SGST', 'IGST')", name='check_tax_type_valid'),
    )

    def __repr__(self):
        return f'<Invoice {self.invoice_number}: {self.client_name} - ₹{self.rounded_total}>'

    @property
    def is_tax_invoice(self):
        return self.invoice_type == 'TAX'

    @property
    def tax_type_display(self):
        return 'CGST + SGST' if self.tax_type == TaxType.SPLIT.value else 'IGST'

    @property
    def line_items(self):
        """Items as engine value objects."""
        return [
            LineItem(description=item.description, quantity=item.quantity,
                     rate=item.rate, hsn_code=item.hsn_code or '')
            for item in self.items
        ]

    def apply_totals(self, totals):
        """Attach a totals snapshot to this invoice."""
        for field, value in totals.as_dict().items():
            if field == 'rounded_total':
                value = int(value)
            setattr(self, field, value)

    def calculate_totals(self):
        """Compute totals from the current items and store them."""
        totals = compute_totals(self.line_items, self.tax_type, self.tax_rate)
        self.apply_totals(totals)
        return totals

    @classmethod
    def for_user(cls, user_id):
        return cls.query.filter_by(user_id=user_id)

    @classmethod
    def get_for_user(cls, invoice_id, user_id):
        """Get an invoice only if it belongs to the given user."""
        return cls.query.filter_by(id=invoice_id, user_id=user_id).first()


class InvoiceItem(db.Model):
    """Line item of an invoice."""
    __tablename__ = 'invoice_items'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoices.id'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.String(500), nullable=False)
    hsn_code = db.Column(db.String(20), nullable=True)
    quantity = db.Column(db.Numeric(12, 4), nullable=False, default=1)
    rate = db.Column(db.Numeric(12, 4), nullable=False)

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='check_quantity_positive'),
        db.CheckConstraint('rate >= 0', name='check_rate_non_negative'),
    )

    def __repr__(self):
        return f'<InvoiceItem "{self.description[:50]}" qty={self.quantity} rate={self.rate}>'

    @property
    def amount(self):
        return Decimal(str(self.quantity)) * Decimal(str(self.rate))
