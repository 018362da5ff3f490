# API v1 Package
from clientdesk.api.v1 import auth, clients, invoices, quotations, receipts, tickets, settings, portal

__all__ = [
    'auth',
    'clients',
    'invoices',
    'quotations',
    'receipts',
    'tickets',
    'settings',
    'portal',
]
