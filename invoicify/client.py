"""HTTP gateway to a remote Invoicify API.

``ApiClient.clients``, ``.invoices`` and ``.settings`` follow the same
contract as the local stores in ``invoicify.store``, so the sync hooks can
run against either one.
"""
import datetime
import logging

import requests

from invoicify.auth import CurrentUser
from invoicify.errors import ERRORS_BY_STATUS, InvoicifyError, RemoteError, TierLimitError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _jsonable(fields):
    return {
        key: value.isoformat() if isinstance(value, (datetime.date, datetime.datetime)) else value
        for key, value in (fields or {}).items()
    }


def error_for_response(response):
    try:
        body = response.json() or {}
    except ValueError:
        body = {}
    message = body.get('error') if isinstance(body, dict) else None

    status = response.status_code
    if status == 402:
        return TierLimitError(body.get('resource'), body.get('limit'), message)
    if status == 400:
        return ValidationError(message, field=body.get('field'))
    cls = ERRORS_BY_STATUS.get(status)
    if cls is None:
        cls = RemoteError if status >= 500 else InvoicifyError
    return cls(message)


class ApiClient:
    def __init__(self, base_url, token, session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clients = RemoteClientStore(self)
        self.invoices = RemoteInvoiceStore(self)
        self.settings = RemoteSettingsStore(self)

    def request(self, method, path, raw=False, **kwargs):
        headers = kwargs.pop('headers', {})
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        url = f'{self.base_url}/api{path}'
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error('%s %s failed: %s', method, url, e)
            raise RemoteError()

        if response.status_code >= 400:
            error = error_for_response(response)
            logger.warning('%s %s returned %s: %s', method, url, response.status_code, error.message)
            raise error
        return response.content if raw else response.json()

    def me(self):
        body = self.request('GET', '/me')
        return CurrentUser(body['id'], body['email'], body['subscription_tier'])

    def dashboard(self):
        return self.request('GET', '/dashboard')


class _RemoteStore:
    def __init__(self, api):
        self.api = api

    def channel(self):
        # No push channel over plain HTTP
        return None


class RemoteClientStore(_RemoteStore):
    def list_page(self, search=None, page=1, page_size=None):
        params = {'q': search} if search else None
        clients = self.api.request('GET', '/clients', params=params)
        return clients, len(clients)

    def list_all(self):
        return self.list_page()[0]

    def get_by_id(self, client_id):
        return self.api.request('GET', f'/clients/{client_id}')['client']

    def count(self):
        return self.api.request('GET', '/clients/count')['count']

    def create(self, fields):
        return self.api.request('POST', '/clients', json=_jsonable(fields))

    def update(self, client_id, fields):
        return self.api.request('PUT', f'/clients/{client_id}', json=_jsonable(fields))

    def delete(self, client_id):
        self.api.request('DELETE', f'/clients/{client_id}')


class RemoteInvoiceStore(_RemoteStore):
    def list_page(self, client_id=None, status=None, page=1, page_size=20):
        params = {'page': page, 'page_size': page_size or 0}
        if client_id:
            params['client_id'] = client_id
        if status:
            params['status'] = status
        body = self.api.request('GET', '/invoices', params=params)
        return body['items'], body['total_count']

    def list_by_client(self, client_id):
        return self.list_page(client_id=client_id, page_size=None)[0]

    def list_all(self):
        return self.list_page(page_size=None)[0]

    def get_by_id(self, invoice_id):
        invoice = self.api.request('GET', f'/invoices/{invoice_id}')
        invoice.pop('totals', None)
        return invoice

    def count_this_month(self, now=None):
        return self.api.request('GET', '/invoices/count', params={'period': 'month'})['count']

    def create(self, fields, line_items):
        return self.api.request('POST', '/invoices', json=dict(_jsonable(fields), line_items=line_items or []))

    def update(self, invoice_id, fields, line_items=None):
        body = _jsonable(fields)
        if line_items is not None:
            body['line_items'] = line_items
        return self.api.request('PUT', f'/invoices/{invoice_id}', json=body)

    def delete(self, invoice_id):
        self.api.request('DELETE', f'/invoices/{invoice_id}')

    def download_pdf(self, invoice_id):
        return self.api.request('GET', f'/invoices/{invoice_id}/pdf', raw=True)


class RemoteSettingsStore(_RemoteStore):
    def get(self):
        return self.api.request('GET', '/settings')

    def update(self, fields):
        return self.api.request('PUT', '/settings', json=_jsonable(fields))

    def upload_logo(self, filename, stream, storage=None):
        return self.api.request('POST', '/settings/logo', files={'file': (filename, stream)})
