"""Entity store: per-user access to clients, invoices and settings.

Every operation is scoped to the user the store was built for. Without a
user, reads come back empty and writes raise ``AuthenticationError``.
Rows are returned as plain dicts.
"""
import datetime
import logging
from collections import namedtuple

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from invoicify import realtime
from invoicify.errors import AuthenticationError, AuthorizationError, NotFoundError, RemoteError, ValidationError
from invoicify.merge import client_changes, invoice_changes, normalize_line_items, settings_changes
from invoicify.models import db, Client, Invoice, InvoiceLineItem, Settings, STATUS_PENDING
from invoicify.storage import LogoStorage
from invoicify.tiers import start_of_month
from invoicify.validation import parse_date, validate_client_form

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def _iso(value):
    return value.isoformat() if value else None


def client_to_dict(c):
    return {
        'id': c.id,
        'user_id': c.user_id,
        'name': c.name,
        'email': c.email,
        'address': c.address,
        'vat_number': c.vat_number,
        'created_at': _iso(c.created_at),
        'updated_at': _iso(c.updated_at),
    }


def line_item_to_dict(i):
    return {
        'id': i.id,
        'description': i.description,
        'quantity': i.quantity,
        'rate': i.rate,
    }


def invoice_to_dict(invoice):
    return {
        'id': invoice.id,
        'user_id': invoice.user_id,
        'client_id': invoice.client_id,
        'invoice_number': invoice.invoice_number,
        'issue_date': _iso(invoice.issue_date),
        'due_date': _iso(invoice.due_date),
        'tax_rate': invoice.tax_rate,
        'status': invoice.status,
        'notes': invoice.notes,
        'created_at': _iso(invoice.created_at),
        'updated_at': _iso(invoice.updated_at),
        'line_items': [line_item_to_dict(i) for i in invoice.line_items],
    }


def settings_to_dict(s):
    return {
        'id': s.id,
        'user_id': s.user_id,
        'company_name': s.company_name,
        'company_email': s.company_email,
        'company_address': s.company_address,
        'company_vat_number': s.company_vat_number,
        'logo_url': s.logo_url,
        'primary_color': s.primary_color,
        'secondary_color': s.secondary_color,
        'currency_symbol': s.currency_symbol,
        'default_tax_rate': s.default_tax_rate,
        'language': s.language,
    }


def _invoice_prefix():
    return current_app.config.get('INVOICE_NUMBER_PREFIX', 'INV-')


def parse_invoice_number(number, prefix='INV-'):
    suffix = number[len(prefix):] if number.startswith(prefix) else number.rsplit('-', 1)[-1]
    try:
        return int(suffix)
    except ValueError:
        return 0


def format_invoice_number(sequence, prefix='INV-'):
    return f'{prefix}{sequence:04d}'


def next_invoice_number(user_id, prefix='INV-'):
    """Highest existing numeric suffix for the user, plus one."""
    numbers = db.session.query(Invoice.invoice_number).filter(Invoice.user_id == user_id).all()
    highest = max((parse_invoice_number(n, prefix) for (n,) in numbers), default=0)
    return format_invoice_number(highest + 1, prefix)


def _page(query, page, page_size):
    total = query.count()
    if page_size:
        page = max(int(page or 1), 1)
        query = query.offset((page - 1) * page_size).limit(page_size)
    return query.all(), total


class _TableStore:
    table = None

    def __init__(self, user):
        self.user = user

    def _require_user(self):
        if self.user is None:
            raise AuthenticationError()
        return self.user

    def _owned(self, model, row_id, label):
        row = db.session.get(model, row_id) if row_id else None
        if row is None:
            raise NotFoundError(f'{label} not found')
        if row.user_id != self.user.id:
            logger.warning('User %s tried to access %s %s owned by someone else', self.user.id, label, row_id)
            raise AuthorizationError()
        return row

    def _read(self, fn):
        try:
            return fn()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Read from %s failed: %s', self.table, e)
            raise RemoteError(f'Failed to load {self.table}')

    def _commit(self, event, tables=None):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Write to %s failed: %s', self.table, e)
            raise RemoteError(f'Failed to save {self.table}')
        for table in tables or (self.table,):
            realtime.publish(table, self.user.id, event)

    def channel(self):
        if self.user is None:
            return None
        return realtime.Channel(self.table, self.user.id)


class ClientStore(_TableStore):
    table = 'clients'

    def list_page(self, search=None, page=1, page_size=None):
        if self.user is None:
            return [], 0
        query = Client.query.filter_by(user_id=self.user.id)
        if search:
            like = f'%{search}%'
            query = query.filter(or_(Client.name.ilike(like), Client.email.ilike(like)))
        query = query.order_by(Client.created_at.desc(), Client.name)
        clients, total = self._read(lambda: _page(query, page, page_size))
        return [client_to_dict(c) for c in clients], total

    def list_all(self):
        return self.list_page()[0]

    def get_by_id(self, client_id):
        if self.user is None:
            return None
        return client_to_dict(self._owned(Client, client_id, 'Client'))

    def count(self):
        if self.user is None:
            return 0
        return self._read(Client.query.filter_by(user_id=self.user.id).count)

    def create(self, fields):
        user = self._require_user()
        changes = client_changes(fields)
        validate_client_form(changes)
        client = Client(user_id=user.id, **changes)
        db.session.add(client)
        self._commit(realtime.INSERT)
        logger.info('Created client %s', client.id)
        return client_to_dict(client)

    def update(self, client_id, fields):
        self._require_user()
        client = self._owned(Client, client_id, 'Client')
        changes = client_changes(fields)
        validate_client_form(changes, partial=True)
        for key, value in changes.items():
            setattr(client, key, value)
        self._commit(realtime.UPDATE)
        return client_to_dict(client)

    def delete(self, client_id):
        """Delete the client together with all of its invoices."""
        self._require_user()
        client = self._owned(Client, client_id, 'Client')
        invoice_count = len(client.invoices)
        db.session.delete(client)
        self._commit(realtime.DELETE, tables=('clients', 'invoices'))
        logger.info('Deleted client %s and %s invoice(s)', client_id, invoice_count)


class InvoiceStore(_TableStore):
    table = 'invoices'

    def _query(self):
        return Invoice.query.filter_by(user_id=self.user.id).options(selectinload(Invoice.line_items))

    def list_page(self, client_id=None, status=None, page=1, page_size=DEFAULT_PAGE_SIZE):
        if self.user is None:
            return [], 0
        query = self._query()
        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        if status and status != 'All':
            query = query.filter(Invoice.status == status)
        query = query.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())
        invoices, total = self._read(lambda: _page(query, page, page_size))
        return [invoice_to_dict(i) for i in invoices], total

    def list_by_client(self, client_id):
        return self.list_page(client_id=client_id, page_size=None)[0]

    def list_all(self):
        return self.list_page(page_size=None)[0]

    def get_by_id(self, invoice_id):
        if self.user is None:
            return None
        return invoice_to_dict(self._owned(Invoice, invoice_id, 'Invoice'))

    def count_this_month(self, now=None):
        if self.user is None:
            return 0
        query = Invoice.query.filter(
            Invoice.user_id == self.user.id,
            Invoice.created_at >= start_of_month(now),
        )
        return self._read(query.count)

    def _set_line_items(self, invoice, line_items):
        # Full replace; delete-orphan removes the previous rows
        invoice.line_items = [
            InvoiceLineItem(position=position, **item)
            for position, item in enumerate(normalize_line_items(line_items))
        ]

    def create(self, fields, line_items):
        """Insert an invoice; the store assigns its id and invoice number."""
        user = self._require_user()
        changes = invoice_changes(fields)
        client_id = changes.get('client_id')
        if not client_id:
            raise ValidationError('Please select a client', field='client_id')
        self._owned(Client, client_id, 'Client')

        invoice = Invoice(
            user_id=user.id,
            client_id=client_id,
            invoice_number=next_invoice_number(user.id, _invoice_prefix()),
            issue_date=parse_date(changes.get('issue_date')) or datetime.date.today(),
            due_date=parse_date(changes.get('due_date')),
            tax_rate=changes.get('tax_rate', 0.0),
            status=changes.get('status', STATUS_PENDING),
            notes=changes.get('notes'),
        )
        self._set_line_items(invoice, line_items or [])
        db.session.add(invoice)
        self._commit(realtime.INSERT)
        logger.info('Created invoice %s', invoice.invoice_number)
        return invoice_to_dict(invoice)

    def update(self, invoice_id, fields, line_items=None):
        self._require_user()
        invoice = self._owned(Invoice, invoice_id, 'Invoice')
        changes = invoice_changes(fields, invoice.status)
        if 'client_id' in changes:
            self._owned(Client, changes['client_id'], 'Client')
        for key in ('issue_date', 'due_date'):
            if key in changes:
                changes[key] = parse_date(changes[key], key)
        if 'issue_date' in changes and changes['issue_date'] is None:
            raise ValidationError('Issue date is required', field='issue_date')

        for key, value in changes.items():
            setattr(invoice, key, value)
        if line_items is not None:
            self._set_line_items(invoice, line_items)
        self._commit(realtime.UPDATE)
        return invoice_to_dict(invoice)

    def delete(self, invoice_id):
        self._require_user()
        invoice = self._owned(Invoice, invoice_id, 'Invoice')
        invoice_number = invoice.invoice_number
        db.session.delete(invoice)
        self._commit(realtime.DELETE)
        logger.info('Deleted invoice %s', invoice_number)


class SettingsStore(_TableStore):
    table = 'settings'

    def _row(self):
        return self._read(Settings.query.filter_by(user_id=self.user.id).first)

    def get(self):
        if self.user is None:
            return None
        row = self._row()
        return settings_to_dict(row) if row else None

    def create(self, fields):
        user = self._require_user()
        if self._row() is not None:
            raise ValidationError('Settings already exist for this user')
        row = Settings(user_id=user.id, **settings_changes(fields))
        db.session.add(row)
        self._commit(realtime.INSERT)
        return settings_to_dict(row)

    def update(self, fields):
        self._require_user()
        row = self._row()
        if row is None:
            raise NotFoundError('Settings not found')
        for key, value in settings_changes(fields).items():
            setattr(row, key, value)
        self._commit(realtime.UPDATE)
        return settings_to_dict(row)

    def upload_logo(self, filename, stream, storage=None):
        user = self._require_user()
        storage = storage or LogoStorage.from_config(current_app.config)
        url = storage.save_logo(user.id, filename, stream)
        return self.update({'logo_url': url})


Stores = namedtuple('Stores', ['clients', 'invoices', 'settings'])


def stores_for(user):
    return Stores(ClientStore(user), InvoiceStore(user), SettingsStore(user))
