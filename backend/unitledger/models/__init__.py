from .inventory import Store, Batch, InventoryUnit
from .defects import DefectRecord
from .orders import Order
from .ledger import LedgerEntry

__all__ = [
    'Store', 'Batch', 'InventoryUnit',
    'DefectRecord',
    'Order',
    'LedgerEntry',
]
