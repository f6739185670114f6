from .accounts import User
from .catalog import Event
from .purchases import AccessGrant, TokenPurchase, Order, OrderType, OrderStatus, GrantStatus

__all__ = [
    'User',
    'Event',
    'AccessGrant', 'TokenPurchase', 'Order',
    'OrderType', 'OrderStatus', 'GrantStatus',
]
