from .users import User
from .catalog import Product
from .campaigns import Campaign
from .orders import Order, OrderItem
from .vouchers import Voucher
from .points import PointsTransaction

__all__ = [
    'User',
    'Product',
    'Campaign',
    'Order', 'OrderItem',
    'Voucher',
    'PointsTransaction',
]
