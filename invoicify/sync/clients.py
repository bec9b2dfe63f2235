from invoicify.errors import TierLimitError, ValidationError
from invoicify.merge import merge_client
from invoicify.models import TIER_FREE
from invoicify.sync.base import FETCH_RETRIES, SyncHook, has_row, now_iso, remove_row, replace_row, temp_id, upsert_row
from invoicify.tiers import TierPolicy
from invoicify.validation import validate_client_form


class ClientsSync(SyncHook):
    table = 'clients'
    load_error_message = 'Failed to load clients'

    def __init__(self, store, user=None, policy=None, notify=None, retries=FETCH_RETRIES):
        super().__init__(store, user=user, notify=notify, retries=retries)
        self.policy = policy or TierPolicy()

    @property
    def clients(self):
        return self.data

    @property
    def tier(self):
        return self.user.tier if self.user else TIER_FREE

    def _query(self):
        return self.store.list_page()

    def can_add_client(self):
        return self.policy.can_add_client(self.tier, self.store.count)

    def add_client(self, fields):
        try:
            validate_client_form(fields)
            self.policy.check_client(self.tier, self.store.count)
        except (ValidationError, TierLimitError) as e:
            self._refuse(e)

        placeholder_id = temp_id()
        placeholder = merge_client({
            'id': placeholder_id,
            'user_id': self.user.id if self.user else None,
            'name': '',
            'email': None,
            'address': None,
            'vat_number': None,
            'created_at': now_iso(),
            'updated_at': now_iso(),
        }, fields)

        def apply(rows, total):
            return [placeholder] + rows, (total or 0) + 1

        def reconcile(rows, total, created):
            return upsert_row(rows, placeholder_id, created), total

        return self._mutate(
            lambda: self.store.create(fields),
            apply=apply,
            reconcile=reconcile,
            success='Client added successfully',
            failure='Failed to add client',
        )

    def update_client(self, client_id, updates):
        try:
            validate_client_form(updates, partial=True)
        except ValidationError as e:
            self._refuse(e)

        def apply(rows, total):
            return [merge_client(r, updates) if r['id'] == client_id else r for r in rows], total

        def reconcile(rows, total, updated):
            return replace_row(rows, updated['id'], updated), total

        return self._mutate(
            lambda: self.store.update(client_id, updates),
            apply=apply,
            reconcile=reconcile,
            success='Client updated successfully',
            failure='Failed to update client',
        )

    def delete_client(self, client_id):
        """Remove a client; the store cascades its invoices."""
        def apply(rows, total):
            if not has_row(rows, client_id):
                return rows, total
            return remove_row(rows, client_id), max((total or 1) - 1, 0)

        self._mutate(
            lambda: self.store.delete(client_id),
            apply=apply,
            success='Client deleted successfully',
            failure='Failed to delete client',
        )
        return client_id
