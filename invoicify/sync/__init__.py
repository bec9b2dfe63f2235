"""Client-side data synchronization: cached entity state kept in step with the store."""
from invoicify.sync.cache import QueryCache
from invoicify.sync.clients import ClientsSync
from invoicify.sync.invoices import InvoicesSync, duplicate_fields
from invoicify.sync.pagination import Paginator
from invoicify.sync.settings import SettingsSync

__all__ = ['QueryCache', 'ClientsSync', 'InvoicesSync', 'SettingsSync', 'Paginator', 'duplicate_fields']
