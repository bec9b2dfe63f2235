import datetime

from invoicify.errors import InvoicifyError, TierLimitError, ValidationError
from invoicify.merge import merge_invoice, normalize_line_items
from invoicify.models import STATUS_PAID, STATUS_PENDING, TIER_FREE
from invoicify.sync.base import FETCH_RETRIES, SyncHook, has_row, now_iso, remove_row, replace_row, temp_id, upsert_row
from invoicify.sync.pagination import DEFAULT_PAGE_SIZE, Paginator
from invoicify.tiers import TierPolicy
from invoicify.validation import validate_invoice_form


def duplicate_fields(source, today=None):
    """Fields for a copy of ``source``: same client, items and tax rate, fresh dates, Pending."""
    today = today or datetime.date.today()
    fields = {
        'client_id': source['client_id'],
        'issue_date': today.isoformat(),
        'due_date': None,
        'tax_rate': source['tax_rate'],
        'status': STATUS_PENDING,
        'notes': source.get('notes'),
    }
    line_items = [
        {'description': item['description'], 'quantity': item['quantity'], 'rate': item['rate']}
        for item in source['line_items']
    ]
    return fields, line_items


class InvoicesSync(SyncHook):
    """Paginated invoice list, newest first."""

    table = 'invoices'
    load_error_message = 'Failed to load invoices'

    def __init__(self, store, user=None, policy=None, notify=None, page_size=DEFAULT_PAGE_SIZE,
                 retries=FETCH_RETRIES):
        super().__init__(store, user=user, notify=notify, retries=retries)
        self.policy = policy or TierPolicy()
        self.paginator = Paginator(page_size)

    @property
    def invoices(self):
        return self.data

    @property
    def tier(self):
        return self.user.tier if self.user else TIER_FREE

    @property
    def page(self):
        return self.paginator.page

    @property
    def total_pages(self):
        return self.paginator.total_pages

    @property
    def total_count(self):
        return self.paginator.total_count

    def _query(self):
        return self.store.list_page(page=self.paginator.page, page_size=self.paginator.page_size)

    def _cache_changed(self):
        self.paginator.total_count = self.cache.total_count or 0

    def _after_fetch(self):
        if self.paginator.clamp(len(self.cache.data)):
            self._fetch()

    def next_page(self):
        if self.paginator.next_page():
            return self.load()
        return False

    def prev_page(self):
        if self.paginator.prev_page():
            return self.load()
        return False

    def go_to_page(self, page):
        if self.paginator.go_to_page(page):
            return self.load()
        return False

    def can_add_invoice(self):
        return self.policy.can_add_invoice(self.tier, self.store.count_this_month)

    def _check_tier(self):
        try:
            self.policy.check_invoice(self.tier, self.store.count_this_month)
        except TierLimitError as e:
            self._refuse(e)

    def _create(self, fields, line_items, success, failure):
        placeholder_id = temp_id()
        placeholder = merge_invoice({
            'id': placeholder_id,
            'user_id': self.user.id if self.user else None,
            'client_id': None,
            'invoice_number': None,
            'issue_date': datetime.date.today().isoformat(),
            'due_date': None,
            'tax_rate': 0.0,
            'status': STATUS_PENDING,
            'notes': None,
            'created_at': now_iso(),
            'updated_at': now_iso(),
            'line_items': [],
        }, fields, line_items)
        first_page = self.paginator.page == 1
        page_size = self.paginator.page_size

        def apply(rows, total):
            if first_page:
                rows = ([placeholder] + rows)[:page_size]
            return rows, (total or 0) + 1

        def reconcile(rows, total, created):
            if first_page:
                rows = upsert_row(rows, placeholder_id, created)[:page_size]
            return rows, total

        return self._mutate(
            lambda: self.store.create(fields, line_items),
            apply=apply,
            reconcile=reconcile,
            success=success,
            failure=failure,
        )

    def add_invoice(self, fields, line_items):
        try:
            validate_invoice_form(fields, line_items)
        except ValidationError as e:
            self._refuse(e)
        self._check_tier()
        return self._create(fields, line_items, 'Invoice created successfully', 'Failed to create invoice')

    def duplicate_invoice(self, invoice_id, today=None):
        self._check_tier()
        try:
            source = self.store.get_by_id(invoice_id)
        except InvoicifyError:
            self.notify('error', 'Failed to duplicate invoice')
            raise
        fields, line_items = duplicate_fields(source, today)
        return self._create(fields, line_items, 'Invoice duplicated successfully', 'Failed to duplicate invoice')

    def _update(self, invoice_id, updates, line_items, success, failure):
        current = next((r for r in self.cache.data if r['id'] == invoice_id), None)
        try:
            merged = merge_invoice(current, updates, line_items) if current else None
        except ValidationError as e:
            self._refuse(e)

        def apply(rows, total):
            if merged is None:
                return rows, total
            return replace_row(rows, invoice_id, merged), total

        def reconcile(rows, total, updated):
            return replace_row(rows, updated['id'], updated), total

        return self._mutate(
            lambda: self.store.update(invoice_id, updates, line_items),
            apply=apply,
            reconcile=reconcile,
            success=success,
            failure=failure,
        )

    def update_invoice(self, invoice_id, updates, line_items=None):
        """Partial update; ``line_items``, when given, replaces the whole list."""
        try:
            validate_invoice_form(updates, line_items, partial=True)
        except ValidationError as e:
            self._refuse(e)
        if line_items is not None:
            line_items = normalize_line_items(line_items)
        return self._update(invoice_id, updates, line_items,
                            'Invoice updated successfully', 'Failed to update invoice')

    def mark_paid(self, invoice_id):
        return self._update(invoice_id, {'status': STATUS_PAID}, None,
                            'Invoice marked as paid', 'Failed to update invoice')

    def delete_invoice(self, invoice_id):
        def apply(rows, total):
            if not has_row(rows, invoice_id):
                return rows, total
            return remove_row(rows, invoice_id), max((total or 1) - 1, 0)

        self._mutate(
            lambda: self.store.delete(invoice_id),
            apply=apply,
            success='Invoice deleted successfully',
            failure='Failed to delete invoice',
        )
        if self.paginator.clamp(len(self.cache.data)):
            self.load()
        return invoice_id
