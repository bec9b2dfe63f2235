import datetime
import logging
import uuid

from invoicify.errors import InvoicifyError, RemoteError
from invoicify.sync.cache import QueryCache

logger = logging.getLogger(__name__)

FETCH_RETRIES = 1


def log_notification(level, message):
    """Default user notification sink."""
    logger.log(logging.ERROR if level == 'error' else logging.INFO, '[%s] %s', level, message)


def temp_id():
    return f'temp-{uuid.uuid4().hex}'


def now_iso():
    return datetime.datetime.now().isoformat()


def replace_row(rows, row_id, row):
    return [row if r['id'] == row_id else r for r in rows]


def remove_row(rows, row_id):
    return [r for r in rows if r['id'] != row_id]


def has_row(rows, row_id):
    return any(r['id'] == row_id for r in rows)


def upsert_row(rows, placeholder_id, row):
    """Swap the placeholder for the stored row, unless a refetch already brought it in."""
    rows = remove_row(rows, placeholder_id)
    if has_row(rows, row['id']):
        return replace_row(rows, row['id'], row)
    return [row] + rows


class SyncHook:
    """Keeps a local cache of one store query consistent with the store.

    Subclasses provide ``_query`` returning ``(data, total_count)``.
    Mutations go through ``_mutate``: optimistic apply, store call, then
    reconcile with the stored row, or roll back to the snapshot on failure.
    Realtime changes trigger a background refetch that replaces the cache.
    """

    table = None
    load_error_message = 'Failed to load data'
    retry_on = (RemoteError,)

    def __init__(self, store, user=None, notify=None, retries=FETCH_RETRIES):
        self.store = store
        self.user = user
        self.notify = notify or log_notification
        self.retries = retries
        self.cache = QueryCache(self.empty())
        self.loading = False
        self.error = None
        self._channel = None

    def empty(self):
        return []

    @property
    def data(self):
        return self.cache.data

    def activate(self):
        """Load unless the cache is fresh, then subscribe to changes for the current user."""
        if self.cache.stale:
            self.load()
        if self._channel is None:
            self._channel = self.store.channel()
            if self._channel is not None:
                self._channel.on(self._on_change).subscribe()
        return self

    def close(self):
        if self._channel is not None:
            self._channel.unsubscribe()
            self._channel = None
            # Changes are no longer delivered, so the cache can fall behind
            self.cache.invalidate()

    def _query(self):
        raise NotImplementedError

    def _cache_changed(self):
        pass

    def _after_fetch(self):
        pass

    def _fetch(self):
        token = self.cache.begin_fetch()
        data, total_count = self._query()
        if not self.cache.fetch_result(token, data, total_count):
            return False
        self._cache_changed()
        self._after_fetch()
        return True

    def _fetch_with_retry(self):
        attempt = 0
        while True:
            try:
                return self._fetch()
            except self.retry_on as e:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning('Loading %s failed (%s), retrying', self.table, e)

    def load(self):
        """Foreground fetch; failures become ``error`` and a notification."""
        self.loading = True
        try:
            self._fetch_with_retry()
            self.error = None
            return True
        except InvoicifyError as e:
            self.error = e
            logger.error('Loading %s failed: %s', self.table, e)
            self.notify('error', self.load_error_message)
            return False
        finally:
            self.loading = False

    def refresh(self):
        """Background fetch; failures are logged only and the cache stays as is."""
        self.cache.invalidate()
        try:
            return self._fetch()
        except InvoicifyError as e:
            logger.warning('Background refresh of %s failed: %s', self.table, e)
            return False

    def _on_change(self, event):
        logger.debug('Realtime %s on %s, refreshing', event, self.table)
        self.refresh()

    def _refuse(self, error):
        """Report a locally detected problem; nothing reaches the store."""
        self.notify('error', error.message)
        raise error

    def _mutate(self, commit, apply=None, reconcile=None, success=None, failure=None):
        snapshot = self.cache.optimistic_apply(apply) if apply else None
        if apply:
            self._cache_changed()
        try:
            result = commit()
        except InvoicifyError as e:
            if snapshot is not None and self.cache.rollback(snapshot):
                self._cache_changed()
            logger.error('%s: %s', failure or 'Write failed', e)
            self.notify('error', failure or e.message)
            raise
        if reconcile:
            self.cache.reconcile(lambda data, total: reconcile(data, total, result))
            self._cache_changed()
        if success:
            self.notify('success', success)
        return result
