"""Error taxonomy shared by the store, the sync hooks, the API and the HTTP client."""


class InvoicifyError(Exception):
    status_code = 500
    default_message = 'Something went wrong'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AuthenticationError(InvoicifyError):
    status_code = 401
    default_message = 'Not authenticated'


class AuthorizationError(InvoicifyError):
    status_code = 403
    default_message = 'Not allowed to access this record'


class NotFoundError(InvoicifyError):
    status_code = 404
    default_message = 'Not found'


class ValidationError(InvoicifyError):
    status_code = 400
    default_message = 'Invalid data'

    def __init__(self, message=None, field=None):
        super().__init__(message)
        self.field = field


class TierLimitError(InvoicifyError):
    """Creation refused by the tier policy. Never reaches the store."""

    status_code = 402

    def __init__(self, resource, limit, message=None):
        super().__init__(message or self.describe(resource, limit))
        self.resource = resource
        self.limit = limit

    @staticmethod
    def describe(resource, limit):
        if resource == 'invoices':
            return f'Free tier limit: Maximum {limit} invoices per month. Upgrade for unlimited!'
        return f'Free tier limit: Maximum {limit} {resource}. Upgrade to add more!'


class RemoteError(InvoicifyError):
    status_code = 502
    default_message = 'Could not reach the server'


ERRORS_BY_STATUS = {
    cls.status_code: cls
    for cls in (AuthenticationError, AuthorizationError, NotFoundError, ValidationError, RemoteError)
}
