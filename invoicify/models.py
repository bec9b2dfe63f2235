import secrets
import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

TIER_FREE = 'free'
TIER_PRO = 'pro'

STATUS_PENDING = 'Pending'
STATUS_PAID = 'Paid'


def generate_id():
    return str(uuid.uuid4())


def generate_token():
    return secrets.token_hex(32)


class Profile(db.Model):
    __tablename__ = 'profiles'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    email = db.Column(db.String, unique=True, nullable=False)
    full_name = db.Column(db.String)
    company_name = db.Column(db.String)
    subscription_tier = db.Column(db.String, nullable=False, default=TIER_FREE)
    subscription_status = db.Column(db.String, nullable=False, default='active')
    api_token = db.Column(db.String(64), unique=True, nullable=False, default=generate_token)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f'<Profile {self.email}>'


class Client(db.Model):
    __tablename__ = 'clients'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False, index=True)
    name = db.Column(db.String, nullable=False)
    email = db.Column(db.String)
    address = db.Column(db.String)
    vat_number = db.Column(db.String)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    invoices = db.relationship('Invoice', backref='client', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Client {self.name}>'


class Invoice(db.Model):
    __tablename__ = 'invoices'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'invoice_number', name='uq_invoices_user_number'),
    )
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False, index=True)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    invoice_number = db.Column(db.String, nullable=False)
    issue_date = db.Column(db.Date, nullable=False)
    # Empty on duplicated invoices until the user picks one
    due_date = db.Column(db.Date)
    tax_rate = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String, nullable=False, default=STATUS_PENDING)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    line_items = db.relationship(
        'InvoiceLineItem',
        backref='invoice',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='InvoiceLineItem.position',
    )

    def __repr__(self):
        return f'<Invoice {self.invoice_number}>'


class InvoiceLineItem(db.Model):
    __tablename__ = 'invoice_line_items'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    invoice_id = db.Column(db.String(36), db.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.String, nullable=False, default='')
    quantity = db.Column(db.Float, nullable=False, default=0)
    rate = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.now)


class Settings(db.Model):
    __tablename__ = 'settings'
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False, unique=True)
    company_name = db.Column(db.String)
    company_email = db.Column(db.String)
    company_address = db.Column(db.String)
    company_vat_number = db.Column(db.String)
    logo_url = db.Column(db.String)
    primary_color = db.Column(db.String, nullable=False, default='#4F46E5')
    secondary_color = db.Column(db.String, nullable=False, default='#EC4899')
    currency_symbol = db.Column(db.String, nullable=False, default='$')
    default_tax_rate = db.Column(db.Float, nullable=False, default=20)
    language = db.Column(db.String(2), nullable=False, default='en')
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)
