"""
Integration tests for the HTTP gateway.

The gateway talks to the Flask test client through a small session
adapter, so requests made by ApiClient go through the real API.

Tests cover:
- Store operations over HTTP
- Status code to error mapping
- Connection failures
- Sync hooks running on the remote stores
"""

import datetime
import io
from unittest import mock

import pytest
import requests

from invoicify.client import ApiClient
from invoicify.errors import AuthenticationError, AuthorizationError, NotFoundError, RemoteError, TierLimitError, \
    ValidationError
from invoicify.sync import ClientsSync, InvoicesSync

BASE_URL = 'http://testserver'


class _Response:
    def __init__(self, response):
        self.status_code = response.status_code
        self.content = response.data
        self._json = response.get_json(silent=True)

    def json(self):
        if self._json is None and self.content:
            raise ValueError('not json')
        return self._json


class FlaskSession:
    """Minimal stand-in for requests.Session backed by a Flask test client."""

    def __init__(self, http):
        self.http = http

    def request(self, method, url, headers=None, timeout=None, params=None, json=None, files=None):
        kwargs = {'headers': headers, 'query_string': params}
        if json is not None:
            kwargs['json'] = json
        if files:
            kwargs['data'] = {key: (stream, name) for key, (name, stream) in files.items()}
            kwargs['content_type'] = 'multipart/form-data'
        return _Response(self.http.open(url[len(BASE_URL):], method=method, **kwargs))


@pytest.fixture
def api(http, free_profile):
    return ApiClient(BASE_URL, free_profile.api_token, session=FlaskSession(http))


@pytest.fixture
def pro_api(http, pro_profile):
    return ApiClient(BASE_URL, pro_profile.api_token, session=FlaskSession(http))


class TestApiClient:
    """Test cases for ApiClient store operations."""

    def test_me(self, api):
        user = api.me()
        assert user.email == 'free@example.com'
        assert user.tier == 'free'

    def test_client_round_trip(self, api):
        created = api.clients.create({'name': 'Acme', 'email': 'a@acme.test'})

        assert api.clients.get_by_id(created['id']) == created
        assert api.clients.count() == 1
        assert api.clients.update(created['id'], {'address': 'Main St'})['address'] == 'Main St'

        api.clients.delete(created['id'])
        assert api.clients.list_page() == ([], 0)

    def test_invoice_operations(self, api):
        client = api.clients.create({'name': 'Acme', 'email': 'a@acme.test'})
        fields = {'client_id': client['id'], 'due_date': datetime.date(2030, 1, 31), 'tax_rate': 10}
        items = [{'description': 'Work', 'quantity': 2, 'rate': 100}]

        invoice = api.invoices.create(fields, items)
        items_page, total = api.invoices.list_page(page=1, page_size=20)

        assert invoice['due_date'] == '2030-01-31'
        assert total == 1
        assert items_page[0]['id'] == invoice['id']
        assert api.invoices.get_by_id(invoice['id']) == invoice
        assert api.invoices.count_this_month() == 1
        assert api.invoices.update(invoice['id'], {'status': 'Paid'})['status'] == 'Paid'
        assert api.invoices.download_pdf(invoice['id']).startswith(b'%PDF')

    def test_list_all_is_unpaged(self, pro_api):
        """Test full listings are not cut off at the default page size."""
        client = pro_api.clients.create({'name': 'Globex', 'email': 'g@globex.test'})
        fields = {'client_id': client['id'], 'due_date': '2030-01-31'}
        items = [{'description': 'Work', 'quantity': 1, 'rate': 10}]
        created = {pro_api.invoices.create(fields, items)['id'] for _ in range(22)}

        assert {i['id'] for i in pro_api.invoices.list_all()} == created
        assert {i['id'] for i in pro_api.invoices.list_by_client(client['id'])} == created

    def test_settings(self, api):
        assert api.settings.update({'language': 'fr'})['language'] == 'fr'
        assert api.settings.get()['language'] == 'fr'

        logo = api.settings.upload_logo('logo.png', io.BytesIO(b'\x89PNG'))
        assert logo['logo_url'].endswith('/logo.png')

    def test_no_realtime_channel(self, api):
        assert api.clients.channel() is None
        assert api.invoices.channel() is None


class TestErrorMapping:
    """Test cases for status code to error mapping."""

    def test_unauthenticated(self, http):
        anonymous = ApiClient(BASE_URL, None, session=FlaskSession(http))
        with pytest.raises(AuthenticationError):
            anonymous.me()

    def test_not_found(self, api):
        with pytest.raises(NotFoundError):
            api.invoices.get_by_id('missing')

    def test_forbidden(self, api, pro_api):
        client = api.clients.create({'name': 'Acme', 'email': 'a@acme.test'})
        with pytest.raises(AuthorizationError):
            pro_api.clients.get_by_id(client['id'])

    def test_validation_keeps_field(self, api):
        with pytest.raises(ValidationError) as exc_info:
            api.clients.create({'name': 'Acme'})
        assert exc_info.value.field == 'email'

    def test_tier_limit(self, api):
        for i in range(3):
            api.clients.create({'name': f'C{i}', 'email': f'c{i}@x.test'})

        with pytest.raises(TierLimitError) as exc_info:
            api.clients.create({'name': 'C3', 'email': 'c3@x.test'})

        assert exc_info.value.resource == 'clients'
        assert exc_info.value.limit == 3

    def test_connection_failure(self):
        session = mock.Mock()
        session.request.side_effect = requests.ConnectionError('refused')
        api = ApiClient(BASE_URL, 'token', session=session)

        with pytest.raises(RemoteError):
            api.clients.count()

    def test_server_error(self):
        response = mock.Mock(status_code=503)
        response.json.side_effect = ValueError('no body')
        session = mock.Mock()
        session.request.return_value = response
        api = ApiClient(BASE_URL, 'token', session=session)

        with pytest.raises(RemoteError):
            api.settings.get()


class TestRemoteSync:
    """Test cases for sync hooks on top of the HTTP gateway."""

    def test_clients_hook(self, api, policy, notify, notifications):
        hook = ClientsSync(api.clients, api.me(), policy, notify).activate()

        for i in range(3):
            hook.add_client({'name': f'C{i}', 'email': f'c{i}@x.test'})
        with pytest.raises(TierLimitError):
            hook.add_client({'name': 'C3', 'email': 'c3@x.test'})

        assert len(hook.clients) == 3
        assert not any(c['id'].startswith('temp-') for c in hook.clients)

    def test_invoices_hook(self, api, notify):
        client = api.clients.create({'name': 'Acme', 'email': 'a@acme.test'})
        hook = InvoicesSync(api.invoices, api.me(), notify=notify).activate()

        created = hook.add_invoice({'client_id': client['id'], 'due_date': '2030-01-31'},
                                   [{'description': 'Work', 'quantity': 1, 'rate': 10}])
        hook.mark_paid(created['id'])

        assert hook.invoices[0]['status'] == 'Paid'
        assert hook.total_count == 1
