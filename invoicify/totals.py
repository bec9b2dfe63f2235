"""Invoice money calculations.

All arithmetic stays in full float precision; only ``format_money`` rounds,
and only for display.
"""
from collections import namedtuple

from invoicify.models import STATUS_PAID, STATUS_PENDING

Totals = namedtuple('Totals', ['subtotal', 'tax_amount', 'total'])


def line_amount(item):
    return float(item['quantity']) * float(item['rate'])


def compute_totals(line_items, tax_rate):
    subtotal = sum((line_amount(item) for item in line_items), 0.0)
    tax_amount = subtotal * (float(tax_rate or 0) / 100)
    return Totals(subtotal, tax_amount, subtotal + tax_amount)


def invoice_totals(invoice):
    return compute_totals(invoice.get('line_items') or [], invoice.get('tax_rate'))


def invoice_total(invoice):
    return invoice_totals(invoice).total


def client_revenue(invoices, client_id):
    """Return (lifetime, paid) revenue for one client."""
    lifetime = 0.0
    paid = 0.0
    for invoice in invoices:
        if invoice['client_id'] != client_id:
            continue
        total = invoice_total(invoice)
        lifetime += total
        if invoice['status'] == STATUS_PAID:
            paid += total
    return lifetime, paid


def dashboard_stats(clients, invoices):
    return {
        'total_revenue': sum((invoice_total(i) for i in invoices if i['status'] == STATUS_PAID), 0.0),
        'pending_invoices': sum(1 for i in invoices if i['status'] == STATUS_PENDING),
        'total_clients': len(clients),
    }


def format_money(amount, currency_symbol='$'):
    return f'{currency_symbol}{amount:,.2f}'


def totals_as_dict(totals):
    return {
        'subtotal': totals.subtotal,
        'tax_amount': totals.tax_amount,
        'total': totals.total,
    }
