from .users import User
from .clients import Client
from .sales import Sale, SaleStatus, PAYMENT_METHODS, AD_TYPES
from .invoices import Invoice
from .commissions import CommissionPayment
from .settings import Setting

__all__ = [
    'User',
    'Client',
    'Sale', 'SaleStatus', 'PAYMENT_METHODS', 'AD_TYPES',
    'Invoice',
    'CommissionPayment',
    'Setting',
]
