import io

from flask import Blueprint, current_app, jsonify, request, send_file

from invoicify.auth import current_user
from invoicify.errors import AuthenticationError, InvoicifyError, NotFoundError, TierLimitError, ValidationError
from invoicify.models import STATUS_PAID
from invoicify.pdf_builder import InvoicePDF, pdf_filename
from invoicify.store import stores_for
from invoicify.sync.invoices import duplicate_fields
from invoicify.sync.pagination import Paginator
from invoicify.totals import client_revenue, dashboard_stats, invoice_totals, totals_as_dict
from invoicify.validation import validate_client_form, validate_invoice_form

api = Blueprint('api', __name__, url_prefix='/api')


@api.errorhandler(InvoicifyError)
def handle_error(e):
    body = {'error': e.message}
    if isinstance(e, TierLimitError):
        body.update(resource=e.resource, limit=e.limit)
    if isinstance(e, ValidationError) and e.field:
        body['field'] = e.field
    return jsonify(body), e.status_code


def _policy():
    return current_app.extensions['tier_policy']


def _json():
    return request.get_json(silent=True) or {}


def _require(user):
    if user is None:
        raise AuthenticationError()
    return user


@api.route('/me')
def me():
    user = _require(current_user())
    return jsonify({'id': user.id, 'email': user.email, 'subscription_tier': user.tier})


@api.route('/clients', methods=['GET', 'POST'])
def clients():
    user = current_user()
    store = stores_for(user).clients
    if request.method == 'POST':
        _require(user)
        data = _json()
        validate_client_form(data)
        _policy().check_client(user.tier, store.count)
        return jsonify(store.create(data)), 201

    items, _ = store.list_page(search=request.args.get('q'))
    return jsonify(items)


@api.route('/clients/count')
def client_count():
    return jsonify({'count': stores_for(current_user()).clients.count()})


@api.route('/clients/<client_id>', methods=['GET', 'PUT', 'DELETE'])
def manage_client(client_id):
    stores = stores_for(current_user())
    if request.method == 'DELETE':
        stores.clients.delete(client_id)
        return jsonify({'message': 'Client deleted successfully'})

    if request.method == 'PUT':
        data = _json()
        validate_client_form(data, partial=True)
        return jsonify(stores.clients.update(client_id, data))

    # GET
    client = stores.clients.get_by_id(client_id)
    if client is None:
        raise NotFoundError('Client not found')
    invoices = stores.invoices.list_by_client(client_id)
    lifetime, paid = client_revenue(invoices, client_id)
    return jsonify({
        'client': client,
        'invoices': invoices,
        'lifetime_revenue': lifetime,
        'paid_revenue': paid,
    })


@api.route('/invoices', methods=['GET', 'POST'])
def invoices():
    user = current_user()
    store = stores_for(user).invoices
    if request.method == 'POST':
        _require(user)
        data = _json()
        line_items = data.get('line_items', [])
        validate_invoice_form(data, line_items)
        _policy().check_invoice(user.tier, store.count_this_month)
        return jsonify(store.create(data, line_items)), 201

    page = max(request.args.get('page', 1, type=int), 1)
    page_size = request.args.get('page_size', current_app.config['INVOICES_PAGE_SIZE'], type=int)
    if page_size < 0:
        raise ValidationError('page_size must not be negative', field='page_size')
    if page_size == 0:
        # Unpaged: the whole list on a single page
        page = 1
    items, total = store.list_page(
        client_id=request.args.get('client_id'),
        status=request.args.get('status'),
        page=page,
        page_size=page_size,
    )
    paginator = Paginator(page_size, page=page, total_count=total)
    return jsonify(dict(paginator.as_dict(), items=items))


@api.route('/invoices/count')
def invoice_count():
    return jsonify({'count': stores_for(current_user()).invoices.count_this_month(), 'period': 'month'})


@api.route('/invoices/<invoice_id>', methods=['GET', 'PUT', 'DELETE'])
def manage_invoice(invoice_id):
    store = stores_for(current_user()).invoices
    if request.method == 'DELETE':
        store.delete(invoice_id)
        return jsonify({'message': 'Invoice deleted successfully'})

    if request.method == 'PUT':
        data = _json()
        line_items = data.get('line_items')
        validate_invoice_form(data, line_items, partial=True)
        return jsonify(store.update(invoice_id, data, line_items))

    # GET
    invoice = store.get_by_id(invoice_id)
    if invoice is None:
        raise NotFoundError('Invoice not found')
    return jsonify(dict(invoice, totals=totals_as_dict(invoice_totals(invoice))))


@api.route('/invoices/<invoice_id>/pay', methods=['POST'])
def mark_paid(invoice_id):
    store = stores_for(current_user()).invoices
    return jsonify(store.update(invoice_id, {'status': STATUS_PAID}))


@api.route('/invoices/<invoice_id>/duplicate', methods=['POST'])
def duplicate_invoice(invoice_id):
    user = _require(current_user())
    store = stores_for(user).invoices
    _policy().check_invoice(user.tier, store.count_this_month)
    fields, line_items = duplicate_fields(store.get_by_id(invoice_id))
    return jsonify(store.create(fields, line_items)), 201


@api.route('/invoices/<invoice_id>/pdf')
def download_pdf(invoice_id):
    stores = stores_for(_require(current_user()))
    invoice = stores.invoices.get_by_id(invoice_id)
    client = stores.clients.get_by_id(invoice['client_id'])
    settings = stores.settings.get()
    logo_path = current_app.extensions['logo_storage'].local_path((settings or {}).get('logo_url'))

    mem = io.BytesIO()
    InvoicePDF(invoice, client, settings, logo_path=logo_path).generate(mem)
    mem.seek(0)
    return send_file(
        mem,
        as_attachment=True,
        download_name=pdf_filename(invoice),
        mimetype='application/pdf',
    )


@api.route('/settings', methods=['GET', 'PUT'])
def settings():
    store = stores_for(current_user()).settings
    if request.method == 'PUT':
        return jsonify(store.update(_json()))
    return jsonify(store.get())


@api.route('/settings/logo', methods=['POST'])
def upload_logo():
    store = stores_for(current_user()).settings
    if 'file' not in request.files:
        raise ValidationError('No file uploaded', field='file')

    file = request.files['file']
    if file.filename == '':
        raise ValidationError('No file selected', field='file')

    return jsonify(store.upload_logo(file.filename, file.stream, storage=current_app.extensions['logo_storage']))


@api.route('/dashboard')
def dashboard():
    stores = stores_for(current_user())
    clients = stores.clients.list_all()
    invoices = stores.invoices.list_all()
    names = {c['id']: c['name'] for c in clients}

    recent = []
    for invoice in invoices[:5]:
        recent.append({
            'id': invoice['id'],
            'invoice_number': invoice['invoice_number'],
            'client_name': names.get(invoice['client_id'], 'N/A'),
            'due_date': invoice['due_date'],
            'status': invoice['status'],
            'total': invoice_totals(invoice).total,
        })

    return jsonify(dict(dashboard_stats(clients, invoices), recent_invoices=recent))
