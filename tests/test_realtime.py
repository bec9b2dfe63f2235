"""
Unit tests for change notification.

Tests cover:
- Table and owner filtering
- Unsubscribing
- Store writes publishing after commit
- User provisioning publishing the settings row
- Subscriber failures not breaking the publisher
"""

from invoicify import realtime
from invoicify.auth import provision_user


class TestChannel:
    """Test cases for realtime.Channel."""

    def test_receives_own_table_and_user(self):
        events = []
        channel = realtime.Channel('clients', 'u1').on(events.append).subscribe()

        realtime.publish('clients', 'u1', realtime.INSERT)
        realtime.publish('clients', 'u2', realtime.INSERT)
        realtime.publish('invoices', 'u1', realtime.DELETE)
        channel.unsubscribe()

        assert events == [realtime.INSERT]

    def test_unsubscribe_stops_delivery(self):
        events = []
        channel = realtime.Channel('clients', 'u1').on(events.append).subscribe()
        channel.unsubscribe()

        realtime.publish('clients', 'u1', realtime.UPDATE)

        assert events == []
        assert channel.subscribed is False

    def test_failing_subscriber_is_isolated(self):
        """Test one subscriber raising does not stop the others."""
        events = []

        def broken(event):
            raise RuntimeError('boom')

        channel = realtime.Channel('clients', 'u1').on(broken).on(events.append).subscribe()
        realtime.publish('clients', 'u1', realtime.UPDATE)
        channel.unsubscribe()

        assert events == [realtime.UPDATE]


class TestStorePublishing:
    """Test cases for store writes publishing changes."""

    def test_client_writes_publish(self, free_stores):
        events = []
        channel = free_stores.clients.channel().on(events.append).subscribe()

        client = free_stores.clients.create({'name': 'Acme', 'email': 'a@acme.test'})
        free_stores.clients.update(client['id'], {'name': 'Acme Ltd'})
        free_stores.clients.delete(client['id'])
        channel.unsubscribe()

        assert events == [realtime.INSERT, realtime.UPDATE, realtime.DELETE]

    def test_client_delete_notifies_invoices(self, free_stores, invoice_fields, line_items):
        """Test the cascade is visible to invoice subscribers."""
        client = free_stores.clients.create({'name': 'Acme', 'email': 'a@acme.test'})
        free_stores.invoices.create(invoice_fields(client['id']), line_items)
        events = []
        channel = free_stores.invoices.channel().on(events.append).subscribe()

        free_stores.clients.delete(client['id'])
        channel.unsubscribe()

        assert events == [realtime.DELETE]

    def test_other_users_writes_are_not_seen(self, free_stores, pro_stores):
        events = []
        channel = free_stores.clients.channel().on(events.append).subscribe()

        pro_stores.clients.create({'name': 'Globex', 'email': 'g@globex.test'})
        channel.unsubscribe()

        assert events == []

    def test_provisioning_publishes_settings(self, db_session):
        events = []

        def receiver(sender, user_id=None, event=None):
            events.append((sender, user_id, event))

        with realtime.row_changed.connected_to(receiver, sender='settings'):
            profile = provision_user('new@example.com', company_name='New Co')

        assert events == [('settings', profile.id, realtime.INSERT)]
