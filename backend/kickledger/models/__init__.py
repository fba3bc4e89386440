from .tenancy import Organization, DocumentSequence
from .auth import User, SessionToken
from .inventory import Variant
from .consignment import Consignor, ConsignmentSale, PayoutTransaction, PayoutTransactionItem, CustomPaymentMethod
from .sales import Sale, SaleItem, Avatar, ProfitDistributionTemplate, ProfitTemplateItem, SaleProfitDistribution

__all__ = [
    'Organization', 'DocumentSequence',
    'User', 'SessionToken',
    'Variant',
    'Consignor', 'ConsignmentSale', 'PayoutTransaction', 'PayoutTransactionItem', 'CustomPaymentMethod',
    'Sale', 'SaleItem', 'Avatar', 'ProfitDistributionTemplate', 'ProfitTemplateItem', 'SaleProfitDistribution',
]
