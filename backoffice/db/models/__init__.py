from .admin import Admin
from .customer import Customer
from .product import Product
from .order import Order
from .order_item import OrderItem
from .stats import StatsSnapshot, MonthlySales

__all__ = [
    'Admin',
    'Customer',
    'Product',
    'Order',
    'OrderItem',
    'StatsSnapshot',
    'MonthlySales'
]
