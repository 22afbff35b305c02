from .vendors import Vendor
from .jobs import Job, LineItem, JobComponent
from .purchasing import PurchaseOrder
from .financials import ProfitSplit
from .audit import PaymentEvent, JobStatusEvent

__all__ = [
    'Vendor',
    'Job', 'LineItem', 'JobComponent',
    'PurchaseOrder',
    'ProfitSplit',
    'PaymentEvent', 'JobStatusEvent',
]
