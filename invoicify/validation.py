"""Pre-submit checks. Everything here runs before any store call."""
import datetime

from invoicify.errors import ValidationError


def parse_date(value, field='date'):
    """Accept a date or a 'YYYY-MM-DD' string; empty values become None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.datetime.strptime(str(value).split('T')[0], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid date for {field}: {value!r}', field=field)


def parse_number(value, field):
    if value is None or value == '':
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)


def _blank(value):
    return value is None or str(value).strip() == ''


def validate_client_form(fields, partial=False):
    for field in ('name', 'email'):
        if partial and field not in fields:
            continue
        if _blank(fields.get(field)):
            raise ValidationError(f'Client {field} is required', field=field)


def is_populated_line_item(item):
    return (
        not _blank(item.get('description'))
        and parse_number(item.get('quantity'), 'quantity') > 0
        and parse_number(item.get('rate'), 'rate') > 0
    )


def validate_line_items(line_items):
    if not line_items:
        raise ValidationError('Please add at least one line item', field='line_items')
    if not any(is_populated_line_item(item) for item in line_items):
        raise ValidationError(
            'Please add at least one line item with description, quantity, and rate',
            field='line_items',
        )


def validate_invoice_form(fields, line_items=None, partial=False):
    if not partial or 'client_id' in fields:
        if _blank(fields.get('client_id')):
            raise ValidationError('Please select a client', field='client_id')
    if not partial or 'due_date' in fields:
        if _blank(fields.get('due_date')):
            raise ValidationError('Please select a due date', field='due_date')
        parse_date(fields['due_date'], 'due_date')
    if 'issue_date' in fields:
        parse_date(fields['issue_date'], 'issue_date')
    if not partial or line_items is not None:
        validate_line_items(line_items)
