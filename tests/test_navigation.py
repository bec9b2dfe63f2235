"""Unit tests for screen selection."""

import pytest

from invoicify.navigation import (
    ClientDetail,
    ClientList,
    Dashboard,
    InvoiceForm,
    InvoiceList,
    InvoiceView,
    NotFound,
    SettingsView,
    path_for,
    resolve_view,
)


class TestPathFor:
    """Test cases for path_for."""

    @pytest.mark.parametrize('view,path', [
        (Dashboard(), '/dashboard'),
        (ClientList(), '/clients'),
        (ClientDetail('c1'), '/clients/c1'),
        (InvoiceList(), '/invoices'),
        (InvoiceForm(), '/invoices/new'),
        (InvoiceForm('i1'), '/invoices/i1/edit'),
        (InvoiceView('i1'), '/invoices/i1'),
        (SettingsView(), '/settings'),
        (NotFound(InvoiceList()), '/invoices'),
    ])
    def test_paths(self, view, path):
        assert path_for(view) == path

    def test_unknown_view(self):
        with pytest.raises(TypeError):
            path_for('dashboard')


class TestResolveView:
    """Test cases for falling back when an entity is gone."""

    def test_deleted_invoice(self):
        view = resolve_view(InvoiceView('gone'), lambda _: True, lambda _: False)
        assert view == NotFound(back=InvoiceList())

    def test_deleted_client(self):
        view = resolve_view(ClientDetail('gone'), lambda _: False, lambda _: True)
        assert view == NotFound(back=ClientList())

    def test_new_invoice_form_needs_no_lookup(self):
        def unexpected(_):
            raise AssertionError('no lookup expected')

        assert resolve_view(InvoiceForm(), unexpected, unexpected) == InvoiceForm()

    def test_existing_entity(self):
        assert resolve_view(InvoiceView('i1'), lambda _: True, lambda _: True) == InvoiceView('i1')

    def test_views_are_immutable(self):
        with pytest.raises(AttributeError):
            ClientDetail('c1').id = 'c2'
