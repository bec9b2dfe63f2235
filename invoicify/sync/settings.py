import logging

from invoicify.errors import AuthenticationError, InvoicifyError, NotFoundError, RemoteError, ValidationError
from invoicify.merge import merge_settings
from invoicify.sync.base import SyncHook

logger = logging.getLogger(__name__)


class SettingsSync(SyncHook):
    """The single settings row of the current user."""

    table = 'settings'
    load_error_message = 'Failed to load settings'
    # Auth and network failures are not worth a second attempt
    retry_on = ()

    def empty(self):
        return None

    @property
    def settings(self):
        return self.data

    def _query(self):
        return self.store.get(), None

    def load(self):
        self.loading = True
        try:
            self._fetch_with_retry()
            if self.cache.data is None and self.user is not None:
                # Provisioning creates the row with the account
                raise NotFoundError('Settings not found. Please refresh the page or contact support '
                                    'if the issue persists.')
            self.error = None
            return True
        except AuthenticationError:
            logger.warning('User not authenticated, clearing settings')
            self.cache.fetch_result(self.cache.begin_fetch(), None)
            self.error = None
            return False
        except RemoteError as e:
            logger.warning('Network issue loading settings: %s', e)
            self.error = None
            return False
        except InvoicifyError as e:
            logger.error('Loading settings failed: %s', e)
            self.error = e
            self.notify('error', self.load_error_message)
            return False
        finally:
            self.loading = False

    def update_settings(self, updates):
        current = self.cache.data
        try:
            merged = merge_settings(current, updates) if current else None
        except ValidationError as e:
            self._refuse(e)

        def apply(row, total):
            return (merged if merged is not None else row), total

        def reconcile(row, total, updated):
            return updated, total

        return self._mutate(
            lambda: self.store.update(updates),
            apply=apply,
            reconcile=reconcile,
            success='Settings updated successfully',
            failure='Failed to update settings',
        )

    def upload_logo(self, filename, stream):
        """The public URL is only known once stored, so there is no optimistic step."""
        return self._mutate(
            lambda: self.store.upload_logo(filename, stream),
            reconcile=lambda row, total, updated: (updated, total),
            success='Logo uploaded successfully',
            failure='Failed to upload logo',
        )
