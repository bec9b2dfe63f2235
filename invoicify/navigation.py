"""Screen selection for a client session. Never persisted."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Dashboard:
    pass


@dataclass(frozen=True)
class ClientList:
    pass


@dataclass(frozen=True)
class ClientDetail:
    id: str


@dataclass(frozen=True)
class InvoiceList:
    pass


@dataclass(frozen=True)
class InvoiceForm:
    id: Optional[str] = None


@dataclass(frozen=True)
class InvoiceView:
    id: str


@dataclass(frozen=True)
class SettingsView:
    pass


@dataclass(frozen=True)
class NotFound:
    back: object


def path_for(view):
    if isinstance(view, Dashboard):
        return '/dashboard'
    if isinstance(view, ClientList):
        return '/clients'
    if isinstance(view, ClientDetail):
        return f'/clients/{view.id}'
    if isinstance(view, InvoiceList):
        return '/invoices'
    if isinstance(view, InvoiceForm):
        return f'/invoices/{view.id}/edit' if view.id else '/invoices/new'
    if isinstance(view, InvoiceView):
        return f'/invoices/{view.id}'
    if isinstance(view, SettingsView):
        return '/settings'
    if isinstance(view, NotFound):
        return path_for(view.back)
    raise TypeError(f'Unknown view: {view!r}')


def resolve_view(view, client_exists, invoice_exists):
    """Swap views whose entity is gone for NotFound with a way back to the list.

    ``client_exists`` / ``invoice_exists`` are callables taking an id.
    """
    if isinstance(view, ClientDetail) and not client_exists(view.id):
        return NotFound(back=ClientList())
    if isinstance(view, (InvoiceView, InvoiceForm)) and view.id and not invoice_exists(view.id):
        return NotFound(back=InvoiceList())
    return view
