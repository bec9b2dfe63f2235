"""Change notification for rows owned by a user.

Writes publish ``(table, user_id, event)`` after they commit. Subscribers
only learn that something changed and must re-fetch to see the new state.
"""
import logging

from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()
row_changed = _signals.signal('row-changed')

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'


def publish(table, user_id, event):
    logger.debug('Publishing %s on %s for user %s', event, table, user_id)
    row_changed.send(table, user_id=user_id, event=event)


class Channel:
    """Subscription to one table, filtered to one owning user."""

    def __init__(self, table, user_id):
        self.table = table
        self.user_id = user_id
        self._callbacks = []
        self.subscribed = False

    def on(self, callback):
        self._callbacks.append(callback)
        return self

    def subscribe(self):
        if not self.subscribed:
            row_changed.connect(self._dispatch)
            self.subscribed = True
        return self

    def unsubscribe(self):
        if self.subscribed:
            row_changed.disconnect(self._dispatch)
            self.subscribed = False

    def _dispatch(self, sender, user_id=None, event=None):
        if sender != self.table or user_id != self.user_id:
            return
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                # A failing subscriber must not fail the write that published
                logger.exception('Realtime subscriber for %s failed', self.table)
