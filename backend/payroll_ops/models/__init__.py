from .orders import Order, LineItem, OrderEvent, OrderStatus, ItemStatus
from .counters import IdCounter
from .undo import UndoAction
from .directory import CatalogItem, Employee

__all__ = [
    'Order', 'LineItem', 'OrderEvent', 'OrderStatus', 'ItemStatus',
    'IdCounter',
    'UndoAction',
    'CatalogItem', 'Employee',
]
