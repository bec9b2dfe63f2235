"""Explicit merge rules for partial updates.

Each entity lists the fields a caller may change. Anything else in an
update payload (ids, owner, invoice number, timestamps) is ignored, so a
partial update can never clobber server-assigned fields.
"""
import copy
import logging

from invoicify.errors import ValidationError
from invoicify.models import STATUS_PAID, STATUS_PENDING
from invoicify.validation import parse_date, parse_number

logger = logging.getLogger(__name__)

CLIENT_FIELDS = ('name', 'email', 'address', 'vat_number')
INVOICE_FIELDS = ('client_id', 'issue_date', 'due_date', 'tax_rate', 'status', 'notes')
LINE_ITEM_FIELDS = ('description', 'quantity', 'rate')
SETTINGS_FIELDS = (
    'company_name',
    'company_email',
    'company_address',
    'company_vat_number',
    'logo_url',
    'primary_color',
    'secondary_color',
    'currency_symbol',
    'default_tax_rate',
    'language',
)

STATUSES = (STATUS_PENDING, STATUS_PAID)
LANGUAGES = ('en', 'fr')


def pick(updates, allowed):
    picked = {key: value for key, value in updates.items() if key in allowed}
    ignored = set(updates) - set(picked)
    if ignored:
        logger.debug('Ignoring read-only fields in update: %s', ', '.join(sorted(ignored)))
    return picked


def check_status_transition(current, new):
    if new not in STATUSES:
        raise ValidationError(f'Unknown invoice status: {new!r}', field='status')
    if current == STATUS_PAID and new == STATUS_PENDING:
        raise ValidationError('A paid invoice cannot be reopened', field='status')


def _date_str(value, field):
    parsed = parse_date(value, field)
    return parsed.isoformat() if parsed else None


def normalize_line_item(item):
    return {
        'description': str(item.get('description') or ''),
        'quantity': parse_number(item.get('quantity'), 'quantity'),
        'rate': parse_number(item.get('rate'), 'rate'),
    }


def normalize_line_items(line_items):
    return [normalize_line_item(item) for item in line_items]


def client_changes(updates):
    return pick(updates, CLIENT_FIELDS)


def invoice_changes(updates, current_status=None):
    changes = pick(updates, INVOICE_FIELDS)
    if 'issue_date' in changes:
        changes['issue_date'] = _date_str(changes['issue_date'], 'issue_date')
    if 'due_date' in changes:
        changes['due_date'] = _date_str(changes['due_date'], 'due_date')
    if 'tax_rate' in changes:
        changes['tax_rate'] = parse_number(changes['tax_rate'], 'tax_rate')
    if 'status' in changes:
        check_status_transition(current_status or STATUS_PENDING, changes['status'])
    return changes


def settings_changes(updates):
    changes = pick(updates, SETTINGS_FIELDS)
    if 'default_tax_rate' in changes:
        changes['default_tax_rate'] = parse_number(changes['default_tax_rate'], 'default_tax_rate')
    if 'language' in changes and changes['language'] not in LANGUAGES:
        raise ValidationError(f'Unsupported language: {changes["language"]!r}', field='language')
    return changes


def merge_client(row, updates):
    merged = copy.deepcopy(row)
    merged.update(client_changes(updates))
    return merged


def merge_invoice(row, updates, line_items=None):
    merged = copy.deepcopy(row)
    merged.update(invoice_changes(updates, row.get('status')))
    if line_items is not None:
        merged['line_items'] = normalize_line_items(line_items)
    return merged


def merge_settings(row, updates):
    merged = copy.deepcopy(row)
    merged.update(settings_changes(updates))
    return merged
